# =============================================================================
# Inner Voice - Headless Observer Entry Point
# =============================================================================
# Runs the capture -> analyze -> react loop without the HTTP server and
# prints each new description to the terminal.
# =============================================================================

import argparse
import logging
import sys
import threading

from config import get_config
from observer.pipeline import ObserverPipeline
from observer.reaction import SpeakOn

logger = logging.getLogger(__name__)


def _print_banner(config) -> None:
    print("\n" + "=" * 60)
    print("  Inner Voice — Observer")
    print("=" * 60)
    print(f"  Source      : {config.capture_source}")
    print(f"  Interval    : {config.capture_interval_seconds}s")
    print(f"  Model       : {config.analysis_model}")
    print(f"  Overlap     : {config.overlap_policy}")
    print(f"  Speak on    : {config.speak_on}")
    print(f"  Keywords    : {', '.join(config.keywords) or '(none)'}")
    print(f"  Vector store: {config.vector_store_url if config.vector_store_enabled else 'off'}")
    print("=" * 60 + "\n")


def _watch(pipeline: ObserverPipeline, stop_event: threading.Event, config) -> None:
    """Print observations as they are appended to the session log."""
    shown = 0
    last_error = None
    while not stop_event.wait(timeout=config.capture_interval_seconds / 2):
        observations = pipeline.session.observations()
        snapshot = pipeline.session.snapshot()

        new = observations[shown:]
        for observation in new:
            print(f"[{observation.timestamp}] {observation.description}")
        shown = len(observations)
        if new and snapshot.keyword_found:
            print(f"  >> {config.keyword_banner}")

        if snapshot.error and snapshot.error != last_error:
            print(f"  !! Error: {snapshot.error}")
        last_error = snapshot.error


def main():
    """CLI entry point for the headless observer."""
    parser = argparse.ArgumentParser(
        description="Inner Voice — headless observer",
        formatter_class=argparse.ArgumentDefaultsHelpFormatter,
    )
    parser.add_argument(
        "--interval", type=float, default=None,
        help="Seconds between captures (overrides config)",
    )
    parser.add_argument(
        "--source", choices=("camera", "screen"), default=None,
        help="Frame source",
    )
    parser.add_argument(
        "--camera", type=int, default=None,
        help="OpenCV camera index",
    )
    parser.add_argument(
        "--speak-on", choices=[s.value for s in SpeakOn], default=None,
        help="When to synthesize speech",
    )
    args = parser.parse_args()

    logging.basicConfig(
        level=logging.INFO,
        format="%(asctime)s [%(name)s] %(levelname)s: %(message)s",
        datefmt="%H:%M:%S",
    )

    config = get_config()
    if args.interval is not None:
        config.capture_interval_seconds = args.interval
    if args.source is not None:
        config.capture_source = args.source
    if args.camera is not None:
        config.camera_index = args.camera
    if args.speak_on is not None:
        config.speak_on = args.speak_on

    _print_banner(config)

    pipeline = ObserverPipeline(config)
    if not pipeline.start():
        print(f"Error: {pipeline.session.snapshot().configuration_error}")
        sys.exit(1)

    stop_event = threading.Event()
    try:
        _watch(pipeline, stop_event, config)
    except KeyboardInterrupt:
        logger.info("Keyboard interrupt received. Shutting down...")
    finally:
        stop_event.set()
        pipeline.stop()


if __name__ == "__main__":
    main()
