# =============================================================================
# Inner Voice - FastAPI Server Application
# =============================================================================
# Page-level surface of the observer. The application lifespan owns one
# ObserverPipeline: it is started when the app starts (the "page load") and
# stopped on shutdown, which cancels the timer, ignores late analysis results
# and releases audio resources. Endpoints only read session snapshots.
# =============================================================================

import logging
import time
from contextlib import asynccontextmanager
from typing import Optional

from fastapi import FastAPI, HTTPException, Query, Request, Response

from config import get_config
from observer.pipeline import ObserverPipeline
from shared.schemas import (
    HealthResponse,
    ObservationListResponse,
    ObservationResponse,
    StatusResponse,
)

logger = logging.getLogger(__name__)

ANALYZING_TEXT = "Analyzing image..."
WAITING_TEXT = "Waiting for analysis..."


def create_app(pipeline: Optional[ObserverPipeline] = None, config=None) -> FastAPI:
    """
    Build the FastAPI application.

    Args:
        pipeline: Pipeline to serve; built from ``config`` at startup if None.
        config:   Config used for the default pipeline and the banner text.
    """

    @asynccontextmanager
    async def lifespan(app: FastAPI):
        """
        On startup:
            - Builds the pipeline (if none was injected) and starts it. A
              missing Anthropic key leaves it stopped with the error shown.

        On shutdown:
            - Stops the pipeline.
        """
        cfg = config or get_config()
        app.state.config = cfg
        app.state.pipeline = pipeline or ObserverPipeline(cfg)
        app.state.start_time = time.time()

        logger.info("Starting observer pipeline...")
        if app.state.pipeline.start():
            logger.info("Server ready — observing.")
        else:
            logger.error(
                "Observer not started: %s",
                app.state.pipeline.session.snapshot().configuration_error,
            )
        yield

        logger.info("Shutting down observer pipeline...")
        app.state.pipeline.stop()

    app = FastAPI(
        title="Inner Voice",
        description=(
            "Captures camera frames on a fixed cadence, has a vision model "
            "describe them in a sarcastic first-person voice, flags keyword "
            "matches and optionally speaks the result."
        ),
        version="0.1.0",
        lifespan=lifespan,
    )

    @app.get("/health", response_model=HealthResponse)
    def health_check(request: Request):
        """Report whether the observer loop is running, and uptime."""
        running = request.app.state.pipeline.running
        return HealthResponse(
            status="ok" if running else "stopped",
            running=running,
            uptime_seconds=round(time.time() - request.app.state.start_time, 2),
        )

    @app.get("/api/v1/status", response_model=StatusResponse)
    def get_status(request: Request):
        """Current description, loading state, error banner and keyword flag."""
        current = request.app.state.pipeline
        snapshot = current.session.snapshot()

        if snapshot.loading:
            description = ANALYZING_TEXT
        else:
            description = snapshot.description or WAITING_TEXT

        return StatusResponse(
            running=snapshot.running,
            loading=snapshot.loading,
            description=description,
            error=snapshot.error,
            configuration_error=snapshot.configuration_error,
            speech_error=snapshot.speech_error,
            keyword_found=snapshot.keyword_found,
            banner=request.app.state.config.keyword_banner if snapshot.keyword_found else None,
            keywords=sorted(current.keywords.terms),
            tick_count=snapshot.tick_count,
            observation_count=snapshot.observation_count,
            latest_frame_id=snapshot.latest_frame_id,
            vector_store_enabled=current.vector_store_enabled,
        )

    @app.get("/api/v1/observations", response_model=ObservationListResponse)
    def list_observations(
        request: Request,
        page: int = Query(default=1, ge=1),
        page_size: int = Query(default=20, ge=1, le=100),
        newest_first: bool = Query(default=False),
    ):
        """List the session's observations with pagination."""
        observations = list(request.app.state.pipeline.session.observations())
        if newest_first:
            observations.reverse()

        offset = (page - 1) * page_size
        return ObservationListResponse(
            observations=[
                ObservationResponse(
                    frame_id=o.frame_id,
                    timestamp=o.timestamp,
                    description=o.description,
                    captured_at=o.captured_at,
                    processing_time_ms=o.processing_time_ms,
                )
                for o in observations[offset:offset + page_size]
            ],
            total_count=len(observations),
            page=page,
            page_size=page_size,
            newest_first=newest_first,
        )

    @app.get("/api/v1/frame/latest")
    def latest_frame(request: Request):
        """Return the most recently captured frame."""
        frame = request.app.state.pipeline.session.latest_frame()
        if frame is None:
            raise HTTPException(status_code=404, detail="No frame captured yet")
        return Response(
            content=frame.data,
            media_type=frame.media_type,
            headers={"X-Frame-Id": frame.frame_id},
        )

    @app.get("/api/v1/audio/latest")
    def latest_audio(request: Request):
        """Return the audio synthesized for the current description."""
        clip = request.app.state.pipeline.latest_audio()
        if clip is None or clip.released:
            raise HTTPException(status_code=404, detail="No audio available")
        return Response(content=clip.data, media_type="audio/mpeg")

    return app


# ---------------------------------------------------------------------------
# FastAPI application
# ---------------------------------------------------------------------------
app = create_app()
