# =============================================================================
# Inner Voice - Shared API Schemas
# =============================================================================
# Pydantic models defining the read-only HTTP contract between the observer
# session and the page that displays it: the current status banner, and the
# paginated observation log.
# =============================================================================

from pydantic import BaseModel, Field
from typing import List, Optional


class HealthResponse(BaseModel):
    status: str
    running: bool
    uptime_seconds: float


class ObservationResponse(BaseModel):
    """
    One entry of the observation log.

    Attributes:
        frame_id:           UUID4 string identifying the source frame.
        timestamp:          ISO 8601 timestamp of when the description arrived.
        description:        The generated first-person description.
        captured_at:        ISO 8601 timestamp of the original capture.
        processing_time_ms: Completion round-trip time in milliseconds.
    """

    frame_id: str
    timestamp: str
    description: str
    captured_at: str
    processing_time_ms: float


class ObservationListResponse(BaseModel):
    """
    Paginated slice of the session's observation log.

    Attributes:
        observations: Entries for the current page.
        total_count:  Number of observations in the session.
        page:         Current page number (1-indexed).
        page_size:    Number of items per page.
        newest_first: Whether the log was read in reverse insertion order.
    """

    observations: List[ObservationResponse]
    total_count: int
    page: int
    page_size: int
    newest_first: bool = False


class StatusResponse(BaseModel):
    """
    Everything the page renders besides the log.

    ``description`` is display text: "Analyzing image..." while a request is
    outstanding, "Waiting for analysis..." before the first result.
    ``banner`` is set only while the latest observation matched a keyword.
    """

    running: bool
    loading: bool
    description: str
    error: Optional[str] = None
    configuration_error: Optional[str] = None
    speech_error: Optional[str] = None
    keyword_found: bool = False
    banner: Optional[str] = None
    keywords: List[str] = Field(default_factory=list)
    tick_count: int = 0
    observation_count: int = 0
    latest_frame_id: Optional[str] = None
    vector_store_enabled: bool = False
