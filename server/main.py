# =============================================================================
# Inner Voice - Server Entry Point
# =============================================================================
# CLI entry point for starting the FastAPI server that runs the observer
# pipeline and serves its session state.
# =============================================================================

import argparse
import logging

import uvicorn

from config import get_config


def main():
    """Parse CLI arguments, apply overrides, and start the server."""
    parser = argparse.ArgumentParser(
        description="Inner Voice — Server",
        formatter_class=argparse.ArgumentDefaultsHelpFormatter,
    )
    parser.add_argument("--host", type=str, default=None, help="Server bind address")
    parser.add_argument("--port", type=int, default=None, help="Server bind port")
    parser.add_argument("--interval", type=float, default=None, help="Seconds between captures")
    parser.add_argument(
        "--source", choices=("camera", "screen"), default=None, help="Frame source"
    )
    args = parser.parse_args()

    logging.basicConfig(
        level=logging.INFO,
        format="%(asctime)s [%(name)s] %(levelname)s: %(message)s",
        datefmt="%H:%M:%S",
    )

    config = get_config()

    if args.host is not None:
        config.server_host = args.host
    if args.port is not None:
        config.server_port = args.port
    if args.interval is not None:
        config.capture_interval_seconds = args.interval
    if args.source is not None:
        config.capture_source = args.source

    print("\n" + "=" * 60)
    print("  Inner Voice — Server")
    print("=" * 60)
    print(f"  Source     : {config.capture_source}")
    print(f"  Interval   : {config.capture_interval_seconds}s")
    print(f"  Model      : {config.analysis_model}")
    print(f"  Speak on   : {config.speak_on}")
    print(f"  API key    : {'set' if config.anthropic_api_key else 'MISSING'}")
    print(f"  Listening  : {config.server_host}:{config.server_port}")
    print("=" * 60 + "\n")

    # Overrides live on the singleton, so the app must be imported in-process.
    from server.app import app

    uvicorn.run(
        app,
        host=config.server_host,
        port=config.server_port,
        log_level="info",
    )


if __name__ == "__main__":
    main()
