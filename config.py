# =============================================================================
# Inner Voice - Centralized Configuration
# =============================================================================
# Provides a single Config dataclass containing all tunable parameters for
# the observer pipeline and the HTTP server. Parameters are overridable via
# environment variables with the INNERVOICE_ prefix
# (e.g., INNERVOICE_CAPTURE_INTERVAL_SECONDS=2.0). API credentials are also
# read from the conventional ANTHROPIC_API_KEY / ELEVENLABS_API_KEY variables.
# =============================================================================

import os
from dataclasses import dataclass, field
from typing import Optional, Tuple

_ENV_PREFIX = "INNERVOICE_"

DEFAULT_ANALYSIS_PROMPT = (
    "I am a witty, slightly sarcastic inner voice observing the user's actions "
    "through a camera feed. Using the provided image, describe what I see in a "
    "concise, first-person perspective (1-2 sentences). Focus on the key objects "
    "or actions in the scene and weave in a cheeky tone that reflects the "
    "user's habits."
)

DEFAULT_KEYWORDS: Tuple[str, ...] = (
    "fridge",
    "refrigerator",
    "refrigerator door",
    "fridge door",
    "freezer",
    "icebox",
    "cooler",
    "chiller",
    "cold storage",
    "appliance",
)


def _parse_keywords(value: str) -> Tuple[str, ...]:
    """
    Split a comma-separated keyword list, dropping blanks.

    Args:
        value: e.g. "fridge, freezer,waterbottle".

    Returns:
        Tuple of stripped keywords in the given order.
    """
    return tuple(part.strip() for part in value.split(",") if part.strip())


def _parse_bool(value: str) -> bool:
    return value.strip().lower() in ("1", "true", "yes", "on")


def _env_secret(*names: str) -> Optional[str]:
    """Return the first non-empty environment variable among ``names``."""
    for name in names:
        value = os.environ.get(name, "").strip()
        if value:
            return value
    return None


@dataclass
class Config:
    """
    Centralized configuration for the Inner Voice system.

    All fields can be overridden via environment variables prefixed with
    INNERVOICE_.
    """

    # -- Capture --
    capture_interval_seconds: float = 2.0
    capture_source: str = "camera"  # "camera" or "screen"
    camera_index: int = 0
    camera_width: int = 640
    camera_height: int = 480
    jpeg_quality: int = 92
    capture_monitor: int = 1  # screen source only

    # -- Analysis (Anthropic Messages API) --
    anthropic_api_key: Optional[str] = field(
        default_factory=lambda: _env_secret("ANTHROPIC_API_KEY")
    )
    analysis_model: str = "claude-3-sonnet-20240229"
    analysis_max_tokens: int = 1024
    analysis_temperature: float = 0.7
    analysis_prompt: str = DEFAULT_ANALYSIS_PROMPT

    # -- Concurrency --
    overlap_policy: str = "discard_stale"  # "discard_stale" or "skip"
    max_concurrent_analyses: int = 4

    # -- Reaction --
    keywords: Tuple[str, ...] = DEFAULT_KEYWORDS
    keyword_banner: str = "KEY WORD FOUND: Refrigerator Detected!"
    speak_on: str = "never"  # "always", "onKeywordMatch" or "never"

    # -- Speech (ElevenLabs) --
    elevenlabs_api_key: Optional[str] = field(
        default_factory=lambda: _env_secret("ELEVENLABS_API_KEY")
    )
    tts_base_url: str = "https://api.elevenlabs.io/v1"
    tts_voice_id: str = "21m00Tcm4TlvDq8ikWAM"
    tts_model_id: str = "eleven_monolingual_v1"
    tts_stability: float = 0.5
    tts_similarity_boost: float = 0.5
    audio_player_command: str = "ffplay -nodisp -autoexit -loglevel quiet"
    http_timeout_seconds: float = 60.0

    # -- Vector store (best-effort, Qdrant REST) --
    vector_store_enabled: bool = False
    vector_store_url: str = "http://localhost:6333"
    vector_store_collection: str = "inner_voice_observations"
    vector_store_dimension: int = 512

    # -- Networking --
    server_host: str = "127.0.0.1"
    server_port: int = 8000

    def __post_init__(self):
        """Apply environment variable overrides."""
        self._apply_env_overrides()

    def _apply_env_overrides(self):
        """
        Override config fields from environment variables.

        Looks for INNERVOICE_<FIELD_NAME_UPPERCASE> environment variables and
        applies them with appropriate type conversion.
        """
        field_types = {
            "capture_interval_seconds": float,
            "capture_source": str,
            "camera_index": int,
            "camera_width": int,
            "camera_height": int,
            "jpeg_quality": int,
            "capture_monitor": int,
            "anthropic_api_key": str,
            "analysis_model": str,
            "analysis_max_tokens": int,
            "analysis_temperature": float,
            "analysis_prompt": str,
            "overlap_policy": str,
            "max_concurrent_analyses": int,
            "keywords": _parse_keywords,
            "keyword_banner": str,
            "speak_on": str,
            "elevenlabs_api_key": str,
            "tts_base_url": str,
            "tts_voice_id": str,
            "tts_model_id": str,
            "tts_stability": float,
            "tts_similarity_boost": float,
            "audio_player_command": str,
            "http_timeout_seconds": float,
            "vector_store_enabled": _parse_bool,
            "vector_store_url": str,
            "vector_store_collection": str,
            "vector_store_dimension": int,
            "server_host": str,
            "server_port": int,
        }
        for field_name, field_type in field_types.items():
            env_key = f"{_ENV_PREFIX}{field_name.upper()}"
            env_value = os.environ.get(env_key)
            if env_value is not None:
                setattr(self, field_name, field_type(env_value))


# ---------------------------------------------------------------------------
# Singleton accessor
# ---------------------------------------------------------------------------
_config_instance: Optional[Config] = None


def get_config() -> Config:
    """
    Return the singleton Config instance, creating it on first call.

    Returns:
        Config: The global configuration object.
    """
    global _config_instance
    if _config_instance is None:
        _config_instance = Config()
    return _config_instance
