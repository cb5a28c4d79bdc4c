# =============================================================================
# Inner Voice - Observer Pipeline
# =============================================================================
# Orchestrates the reactive polling loop:
#   1. A timer tick pulls the current frame from the capture source
#      (skipped silently when none is available).
#   2. The frame is handed to a worker thread for analysis, tagged with a
#      generation number.
#   3. The result is applied to the session only if it is not stale, then
#      the reaction engine and the best-effort vector store run.
# Nothing raised while handling one tick reaches the next one.
# =============================================================================

import logging
from concurrent.futures import ThreadPoolExecutor
from typing import Optional

from observer.analysis import AnalysisClient
from observer.capture import CameraCapture, IntervalTimer, ScreenCapture
from observer.reaction import KeywordSet, ReactionEngine, SpeakOn
from observer.session import ERROR_PLACEHOLDER, Frame, Session
from observer.speech import SpeechClient, SpeechPlayer
from observer.vector_store import VectorStore
from shared.errors import ConfigurationError, UpstreamError

logger = logging.getLogger(__name__)

OVERLAP_POLICIES = ("discard_stale", "skip")


def build_source(config):
    """Create the capture source named by ``config.capture_source``."""
    if config.capture_source == "camera":
        return CameraCapture(
            device_index=config.camera_index,
            width=config.camera_width,
            height=config.camera_height,
            jpeg_quality=config.jpeg_quality,
        )
    if config.capture_source == "screen":
        return ScreenCapture(
            monitor_index=config.capture_monitor,
            jpeg_quality=config.jpeg_quality,
        )
    raise ValueError(f"Unknown capture source: {config.capture_source!r}")


class ObserverPipeline:
    """
    Capture -> analyze -> react loop over one Session.

    Collaborators default to the ones described by ``config`` and are built
    in start(); tests and embedders may inject their own.

    Args:
        config:       The Config instance.
        source:       Object with get_current_frame() -> Optional[Frame].
        analysis:     Object with analyze(Frame) -> Observation.
        reaction:     ReactionEngine.
        vector_store: Optional VectorStore.
        session:      Session to report into (a fresh one by default).
        executor:     Executor running analyses (a thread pool by default).
    """

    def __init__(
        self,
        config,
        source=None,
        analysis=None,
        reaction: Optional[ReactionEngine] = None,
        vector_store: Optional[VectorStore] = None,
        session: Optional[Session] = None,
        executor=None,
    ):
        if config.overlap_policy not in OVERLAP_POLICIES:
            raise ValueError(f"Unknown overlap policy: {config.overlap_policy!r}")

        self._config = config
        self._source = source
        self._analysis = analysis
        self._reaction = reaction
        self._vector_store = vector_store
        self._executor = executor
        self._owns_executor = executor is None
        self.session = session or Session()
        self._timer: Optional[IntervalTimer] = None
        self._started = False

    # -----------------------------------------------------------------
    # Read-only accessors for the UI layer
    # -----------------------------------------------------------------

    @property
    def running(self) -> bool:
        return self._started and not self.session.closed

    @property
    def keywords(self) -> KeywordSet:
        return self._reaction.keywords if self._reaction else KeywordSet.of(self._config.keywords)

    @property
    def vector_store_enabled(self) -> bool:
        return self._vector_store is not None and self._vector_store.enabled

    def latest_audio(self):
        """Return the current AudioClip, if speech is active."""
        if self._reaction is None or self._reaction.speech is None:
            return None
        return self._reaction.speech.current

    # -----------------------------------------------------------------
    # Lifecycle
    # -----------------------------------------------------------------

    def _build_speech(self) -> Optional[SpeechPlayer]:
        if SpeakOn(self._config.speak_on) is SpeakOn.NEVER:
            return None
        try:
            client = SpeechClient.from_config(self._config)
        except ConfigurationError as exc:
            logger.error("Speech disabled: %s", exc)
            self.session.report_error(str(exc))
            return None
        return SpeechPlayer(client, self._config.audio_player_command)

    def prepare(self) -> bool:
        """
        Build the collaborators that were not injected.

        Returns:
            False if the analysis credential is missing; the session then
            carries the configuration error and no request is ever issued.
        """
        if self._analysis is None:
            try:
                self._analysis = AnalysisClient.from_config(self._config)
            except ConfigurationError as exc:
                logger.error("Anthropic client not initialized: %s", exc)
                self.session.set_configuration_error(str(exc))
                return False

        if self._reaction is None:
            self._reaction = ReactionEngine(
                keywords=KeywordSet.of(self._config.keywords),
                speak_on=SpeakOn(self._config.speak_on),
                speech=self._build_speech(),
            )
        if self._vector_store is None and self._config.vector_store_enabled:
            self._vector_store = VectorStore.from_config(self._config)
        if self._source is None:
            self._source = build_source(self._config)
        if self._executor is None:
            self._executor = ThreadPoolExecutor(
                max_workers=self._config.max_concurrent_analyses,
                thread_name_prefix="inner-voice-analysis",
            )
        return True

    def start(self, run_timer: bool = True) -> bool:
        """
        Prepare collaborators and start the polling loop.

        Args:
            run_timer: Start the background timer; False leaves ticking to
                       the caller.

        Returns:
            True if the loop is running.
        """
        if self._started:
            logger.warning("Pipeline already started.")
            return self.running
        if self.session.closed:
            logger.warning("Pipeline was stopped; create a new one to restart.")
            return False
        if not self.prepare():
            return False

        self._started = True
        self.session.mark_running()
        logger.info(
            "Pipeline started (source=%s, interval=%.2fs, policy=%s, speak_on=%s, keywords=%d)",
            self._config.capture_source,
            self._config.capture_interval_seconds,
            self._config.overlap_policy,
            self._config.speak_on,
            len(self._reaction.keywords),
        )
        if run_timer:
            self._timer = IntervalTimer(self._config.capture_interval_seconds, self.tick)
            self._timer.start()
        return True

    def stop(self) -> None:
        """Cancel the timer, ignore in-flight results and release resources."""
        if self._timer is not None:
            self._timer.stop()
            self._timer = None
        self.session.close()

        if self._executor is not None and self._owns_executor:
            self._executor.shutdown(wait=False, cancel_futures=True)
        if self._reaction is not None:
            self._reaction.close()
        if self._vector_store is not None:
            self._vector_store.close()
        if self._source is not None:
            self._source.close()
        logger.info("Pipeline stopped.")

    # -----------------------------------------------------------------
    # Ticks
    # -----------------------------------------------------------------

    def tick(self) -> Optional[int]:
        """
        Run one capture tick.

        Returns:
            The generation number of the dispatched analysis, or None if the
            tick was skipped.
        """
        if not self.running:
            return None

        frame = self._source.get_current_frame()
        if frame is None:
            logger.debug("No frame available; skipping tick")
            return None

        self.session.record_frame(frame)

        if self._config.overlap_policy == "skip" and self.session.has_in_flight():
            logger.debug("Analysis still in flight; skipping frame %s", frame.frame_id)
            return None

        generation = self.session.begin_analysis()
        self._executor.submit(self.process, frame, generation)
        return generation

    def process(self, frame: Frame, generation: int) -> None:
        """
        Analyze one frame and apply the outcome to the session.

        Runs on a worker thread; every failure ends here.
        """
        try:
            observation = self._analysis.analyze(frame)
        except UpstreamError as exc:
            logger.error("Error analyzing frame %s: %s", frame.frame_id, exc)
            self.session.fail(generation, str(exc) or ERROR_PLACEHOLDER)
            return
        except Exception as exc:
            logger.exception("Unexpected error analyzing frame %s", frame.frame_id)
            self.session.fail(generation, str(exc) or ERROR_PLACEHOLDER)
            return

        matched = self._reaction.matches(observation)
        if not self.session.complete(generation, observation, matched):
            return

        reaction = self._reaction.react(observation, matched=matched, generation=generation)
        if reaction.spoken or reaction.speech_error:
            self.session.set_speech_error(reaction.speech_error)

        if self._vector_store is not None:
            self._vector_store.record(observation, frame)
