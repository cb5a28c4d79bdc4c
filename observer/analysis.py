# =============================================================================
# Inner Voice - Analysis Client
# =============================================================================
# Provides the AnalysisClient class that sends one captured frame, together
# with the inner-voice instruction, to the Anthropic Messages API and turns
# the first text block of the reply into an Observation.
# =============================================================================

import base64
import logging
import time

import anthropic

from observer.session import Frame, Observation, utc_now_iso
from shared.errors import ConfigurationError, InvalidResponse, UpstreamError

logger = logging.getLogger(__name__)


class AnalysisClient:
    """
    Multimodal completion adapter producing one Observation per Frame.

    A missing credential is rejected at construction time, so a pipeline
    holding an AnalysisClient never issues requests without a key.

    Args:
        api_key:     Anthropic API key.
        model:       Model identifier.
        prompt:      Instruction sent ahead of the image.
        max_tokens:  Output-length budget per request.
        temperature: Sampling temperature.
        client:      Optional pre-built ``anthropic.Anthropic`` instance.

    Raises:
        ConfigurationError: If ``api_key`` is empty and no client is given.
    """

    def __init__(
        self,
        api_key,
        model: str,
        prompt: str,
        max_tokens: int = 1024,
        temperature: float = 0.7,
        client=None,
    ):
        if client is None:
            if not api_key:
                raise ConfigurationError(
                    "analysis",
                    "API key not configured. Please check your environment variables.",
                )
            client = anthropic.Anthropic(api_key=api_key)

        self._client = client
        self._model = model
        self._prompt = prompt
        self._max_tokens = max_tokens
        self._temperature = temperature

    @classmethod
    def from_config(cls, config) -> "AnalysisClient":
        return cls(
            api_key=config.anthropic_api_key,
            model=config.analysis_model,
            prompt=config.analysis_prompt,
            max_tokens=config.analysis_max_tokens,
            temperature=config.analysis_temperature,
        )

    def build_request(self, frame: Frame) -> dict:
        """
        Build the Messages API keyword arguments for one frame.

        The content parts are ordered instruction first, image second.
        """
        image_b64 = base64.b64encode(frame.data).decode("ascii")
        return {
            "model": self._model,
            "max_tokens": self._max_tokens,
            "temperature": self._temperature,
            "messages": [
                {
                    "role": "user",
                    "content": [
                        {"type": "text", "text": self._prompt},
                        {
                            "type": "image",
                            "source": {
                                "type": "base64",
                                "media_type": frame.media_type,
                                "data": image_b64,
                            },
                        },
                    ],
                }
            ],
        }

    def analyze(self, frame: Frame) -> Observation:
        """
        Describe one frame.

        Args:
            frame: A captured Frame with non-empty image data.

        Returns:
            Observation holding the first text block of the reply.

        Raises:
            ValueError:      If the frame carries no image data.
            UpstreamError:   On any network or API failure.
            InvalidResponse: If the reply contains no text.
        """
        if not frame.data:
            raise ValueError("Frame %s has no image data" % frame.frame_id)

        request = self.build_request(frame)
        logger.debug("Sending frame %s to %s for analysis", frame.frame_id, self._model)

        start = time.time()
        try:
            response = self._client.messages.create(**request)
        except anthropic.APIError as exc:
            raise UpstreamError(str(exc)) from exc
        processing_time_ms = (time.time() - start) * 1000.0

        description = first_text(response)
        if description is None:
            raise InvalidResponse("Invalid response from the completion endpoint")

        logger.info(
            "Frame %s -> description (%.1fms): %s",
            frame.frame_id,
            processing_time_ms,
            description,
        )
        return Observation(
            frame_id=frame.frame_id,
            timestamp=utc_now_iso(),
            description=description,
            captured_at=frame.captured_at,
            processing_time_ms=round(processing_time_ms, 2),
        )


def first_text(response):
    """
    Return the stripped text of the first text block in a Messages reply.

    Returns None when the reply has no content, or its first text block is
    empty.
    """
    for block in getattr(response, "content", None) or []:
        if getattr(block, "type", None) != "text":
            continue
        text = (getattr(block, "text", None) or "").strip()
        return text or None
    return None
