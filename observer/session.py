# =============================================================================
# Inner Voice - Session State
# =============================================================================
# Holds everything the page shows for one run of the observer: the
# append-only Observation log, the loading/error status, the latest keyword
# match flag and the most recent frame. Analysis workers report back through
# the generation-aware complete()/fail() methods; readers only ever get
# immutable snapshots.
# =============================================================================

import logging
import threading
from dataclasses import dataclass, field
from datetime import datetime, timezone
from typing import Optional, Tuple

logger = logging.getLogger(__name__)

ERROR_PLACEHOLDER = "Error analyzing image. Please try again."


def utc_now_iso() -> str:
    return datetime.now(timezone.utc).isoformat()


@dataclass(frozen=True)
class Frame:
    """
    One encoded still image produced by a capture source.

    Attributes:
        frame_id:    UUID4 string identifying this capture.
        data:        Encoded image bytes (JPEG).
        captured_at: ISO 8601 timestamp of the capture.
        media_type:  MIME type of ``data``.
    """

    frame_id: str
    data: bytes = field(repr=False)
    captured_at: str
    media_type: str = "image/jpeg"


@dataclass(frozen=True)
class Observation:
    """
    A description produced by the analysis client for one frame.

    Attributes:
        frame_id:           Frame the description was produced from.
        timestamp:          ISO 8601 timestamp of when the description arrived.
        description:        The model's text.
        captured_at:        ISO 8601 timestamp of the source frame.
        processing_time_ms: Round-trip time of the completion request.
    """

    frame_id: str
    timestamp: str
    description: str
    captured_at: str = ""
    processing_time_ms: float = 0.0


@dataclass(frozen=True)
class SessionSnapshot:
    """Read-only view of the session handed to the UI layer."""

    running: bool
    loading: bool
    description: str
    error: Optional[str]
    configuration_error: Optional[str]
    speech_error: Optional[str]
    keyword_found: bool
    tick_count: int
    observation_count: int
    latest_frame_id: Optional[str]


class Session:
    """
    Process-wide state for one observing session.

    Every analysis is tagged with a generation number by begin_analysis().
    A result is applied only while the session is open and only if its
    generation is newer than the last applied one, so the displayed
    description never regresses to an older tick's result.

    ``loading`` is raised by begin_analysis() and lowered by every applied
    result (or once nothing is outstanding), so an applied description is
    shown even while a newer tick is still in flight.
    """

    def __init__(self):
        self._lock = threading.Lock()
        self._observations = []
        self._latest_frame: Optional[Frame] = None
        self._description = ""
        self._error: Optional[str] = None
        self._configuration_error: Optional[str] = None
        self._speech_error: Optional[str] = None
        self._keyword_found = False
        self._running = False
        self._closed = False
        self._generation = 0
        self._applied_generation = 0
        self._in_flight = 0
        self._loading = False
        self._tick_count = 0

    # -----------------------------------------------------------------
    # Lifecycle
    # -----------------------------------------------------------------

    def mark_running(self) -> None:
        with self._lock:
            self._running = True

    def close(self) -> None:
        """Stop accepting results; any later completion is ignored."""
        with self._lock:
            self._running = False
            self._closed = True

    @property
    def closed(self) -> bool:
        with self._lock:
            return self._closed

    # -----------------------------------------------------------------
    # Writers
    # -----------------------------------------------------------------

    def record_frame(self, frame: Frame) -> None:
        with self._lock:
            self._latest_frame = frame
            self._tick_count += 1

    def has_in_flight(self) -> bool:
        with self._lock:
            return self._in_flight > 0

    def begin_analysis(self) -> int:
        """
        Register a new outstanding analysis.

        Returns:
            The generation number the caller must hand back to complete()/fail().
        """
        with self._lock:
            self._generation += 1
            self._in_flight += 1
            self._loading = True
            return self._generation

    def complete(self, generation: int, observation: Observation, keyword_found: bool) -> bool:
        """
        Apply a successful analysis.

        Appends the observation to the log, replaces the current description,
        clears the error banner and updates the keyword flag.

        Returns:
            True if applied, False if the result was stale or the session closed.
        """
        with self._lock:
            self._settle()
            if not self._accepts(generation):
                return False
            self._applied_generation = generation
            self._loading = False
            self._observations.append(observation)
            self._description = observation.description
            self._error = None
            self._keyword_found = keyword_found
            return True

    def fail(self, generation: int, message: str) -> bool:
        """
        Apply a failed analysis: show ``message`` in the error banner.

        Returns:
            True if applied, False if the failure was stale or the session closed.
        """
        with self._lock:
            self._settle()
            if not self._accepts(generation):
                return False
            self._applied_generation = generation
            self._loading = False
            self._error = message or ERROR_PLACEHOLDER
            self._description = ERROR_PLACEHOLDER
            return True

    def _settle(self) -> None:
        # Caller holds the lock.
        self._in_flight = max(0, self._in_flight - 1)
        if self._in_flight == 0:
            self._loading = False

    def _accepts(self, generation: int) -> bool:
        # Caller holds the lock.
        if self._closed:
            logger.debug("Ignoring result of generation %d: session closed", generation)
            return False
        if generation <= self._applied_generation:
            logger.info(
                "Discarding stale result of generation %d (latest applied: %d)",
                generation,
                self._applied_generation,
            )
            return False
        return True

    def report_error(self, message: str) -> None:
        """Show a message in the error banner until the next successful tick."""
        with self._lock:
            self._error = message

    def set_configuration_error(self, message: str) -> None:
        with self._lock:
            self._configuration_error = message
            self._error = message

    def set_speech_error(self, message: Optional[str]) -> None:
        with self._lock:
            self._speech_error = message

    # -----------------------------------------------------------------
    # Readers
    # -----------------------------------------------------------------

    def observations(self) -> Tuple[Observation, ...]:
        """Return the observation log in insertion order."""
        with self._lock:
            return tuple(self._observations)

    def latest_frame(self) -> Optional[Frame]:
        with self._lock:
            return self._latest_frame

    def snapshot(self) -> SessionSnapshot:
        with self._lock:
            return SessionSnapshot(
                running=self._running,
                loading=self._loading,
                description=self._description,
                error=self._error,
                configuration_error=self._configuration_error,
                speech_error=self._speech_error,
                keyword_found=self._keyword_found,
                tick_count=self._tick_count,
                observation_count=len(self._observations),
                latest_frame_id=self._latest_frame.frame_id if self._latest_frame else None,
            )
