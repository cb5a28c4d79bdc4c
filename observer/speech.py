# =============================================================================
# Inner Voice - Speech Synthesis and Playback
# =============================================================================
# Provides:
#   - SpeechClient: POSTs text to the ElevenLabs text-to-speech endpoint and
#     returns the MPEG audio bytes.
#   - AudioClip:    the playback resource for one synthesized text, backed by
#                   a temporary file that an external player can open.
#   - SpeechPlayer: keeps exactly one live AudioClip, releasing the previous
#                   one whenever the text changes or the player is closed.
# =============================================================================

import logging
import os
import shlex
import subprocess
import tempfile
import threading
from typing import List, Optional

import requests

from shared.errors import ConfigurationError, InvalidResponse, UpstreamError

logger = logging.getLogger(__name__)


class SpeechClient:
    """
    HTTP client for the ElevenLabs text-to-speech API.

    Args:
        api_key:          ElevenLabs API key.
        voice_id:         Voice identifier appended to the endpoint path.
        model_id:         Synthesis model identifier.
        stability:        Voice stability setting (0-1).
        similarity_boost: Voice similarity setting (0-1).
        base_url:         API base URL.
        timeout:          Request timeout in seconds.

    Raises:
        ConfigurationError: If ``api_key`` is empty.
    """

    def __init__(
        self,
        api_key,
        voice_id: str,
        model_id: str,
        stability: float = 0.5,
        similarity_boost: float = 0.5,
        base_url: str = "https://api.elevenlabs.io/v1",
        timeout: float = 60.0,
    ):
        if not api_key:
            raise ConfigurationError(
                "speech",
                "ElevenLabs API key not configured; speech is disabled for this session.",
            )
        self._url = f"{base_url.rstrip('/')}/text-to-speech/{voice_id}"
        self._model_id = model_id
        self._voice_settings = {
            "stability": stability,
            "similarity_boost": similarity_boost,
        }
        self._timeout = timeout
        self._session = requests.Session()
        self._session.headers.update(
            {
                "Accept": "audio/mpeg",
                "Content-Type": "application/json",
                "xi-api-key": api_key,
            }
        )

    @classmethod
    def from_config(cls, config) -> "SpeechClient":
        return cls(
            api_key=config.elevenlabs_api_key,
            voice_id=config.tts_voice_id,
            model_id=config.tts_model_id,
            stability=config.tts_stability,
            similarity_boost=config.tts_similarity_boost,
            base_url=config.tts_base_url,
            timeout=config.http_timeout_seconds,
        )

    def synthesize(self, text: str) -> bytes:
        """
        Convert text to MPEG audio.

        Raises:
            UpstreamError:   On network failure or a non-2xx status.
            InvalidResponse: If the endpoint returns an empty body.
        """
        payload = {
            "text": text,
            "model_id": self._model_id,
            "voice_settings": self._voice_settings,
        }
        try:
            response = self._session.post(self._url, json=payload, timeout=self._timeout)
            response.raise_for_status()
        except requests.exceptions.RequestException as exc:
            raise UpstreamError(f"Speech synthesis failed: {exc}") from exc

        if not response.content:
            raise InvalidResponse("Speech endpoint returned no audio")

        logger.debug("Synthesized %d bytes of audio for %d chars", len(response.content), len(text))
        return response.content

    def close(self) -> None:
        self._session.close()


class AudioClip:
    """
    Playback resource for one synthesized text.

    The audio is written to a temporary ``.mp3`` file on creation. release()
    stops any playback process and deletes the file; it is idempotent.
    """

    def __init__(self, text: str, data: bytes):
        self.text = text
        self.data = data
        self._process: Optional[subprocess.Popen] = None
        fd, self.path = tempfile.mkstemp(prefix="inner-voice-", suffix=".mp3")
        with os.fdopen(fd, "wb") as f:
            f.write(data)
        self._released = False

    @property
    def released(self) -> bool:
        return self._released

    def play(self, command: List[str]) -> None:
        """Start ``command + [path]`` without waiting for it to finish."""
        self._process = subprocess.Popen(
            command + [self.path],
            stdout=subprocess.DEVNULL,
            stderr=subprocess.DEVNULL,
        )

    def release(self) -> None:
        if self._released:
            return
        self._released = True
        if self._process is not None and self._process.poll() is None:
            self._process.terminate()
        self._process = None
        try:
            os.unlink(self.path)
        except FileNotFoundError:
            pass


class SpeechPlayer:
    """
    Speaks observation texts, holding at most one live AudioClip.

    Args:
        client:         A SpeechClient (or compatible object with synthesize()).
        player_command: Command line of an audio player taking a file path as
                        its last argument; empty disables local playback.
    """

    def __init__(self, client, player_command: str = ""):
        self._client = client
        self._command = shlex.split(player_command) if player_command else []
        self._current: Optional[AudioClip] = None
        self._current_generation = 0
        self._sequence = 0
        self._closed = False
        self._lock = threading.Lock()

    @property
    def current(self) -> Optional[AudioClip]:
        with self._lock:
            return self._current

    def speak(self, text: str, generation: Optional[int] = None) -> bool:
        """
        Synthesize and play ``text`` unless it is already the current clip.

        Clips are installed in generation order: a clip whose synthesis
        finishes after a newer one has been installed is dropped. Without an
        explicit generation, calls are ordered by arrival.

        Returns:
            True if a new clip was installed.

        Raises:
            UpstreamError: If synthesis fails; the previous clip is kept.
        """
        with self._lock:
            if self._closed:
                return False
            if generation is None:
                generation = self._sequence + 1
            self._sequence = max(self._sequence, generation)
            if generation <= self._current_generation:
                return False
            if self._current is not None and self._current.text == text:
                return False

        audio = self._client.synthesize(text)
        clip = AudioClip(text, audio)

        with self._lock:
            if self._closed or generation <= self._current_generation:
                logger.debug("Dropping speech for generation %d: superseded", generation)
                clip.release()
                return False
            previous, self._current = self._current, clip
            self._current_generation = generation
            if previous is not None:
                previous.release()
            if self._command:
                try:
                    clip.play(self._command)
                except OSError as exc:
                    logger.warning("Audio playback failed (%s): %s", self._command[0], exc)
        return True

    def close(self) -> None:
        """Release the current clip; later speak() calls do nothing."""
        with self._lock:
            self._closed = True
            clip, self._current = self._current, None
        if clip is not None:
            clip.release()
        close_client = getattr(self._client, "close", None)
        if close_client is not None:
            close_client()
