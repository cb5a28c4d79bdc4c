import os
import threading
from unittest.mock import MagicMock, patch

import pytest
import requests

from config import Config
from observer.speech import AudioClip, SpeechClient, SpeechPlayer
from shared.errors import ConfigurationError, InvalidResponse, UpstreamError


def _response(status=200, content=b"ID3audio"):
    response = MagicMock()
    response.status_code = status
    response.content = content
    if status >= 400:
        response.raise_for_status.side_effect = requests.exceptions.HTTPError(f"{status} Error")
    return response


class TestSpeechClient:
    def test_missing_key(self):
        with pytest.raises(ConfigurationError) as excinfo:
            SpeechClient.from_config(Config())
        assert excinfo.value.integration == "speech"

    def test_request(self):
        client = SpeechClient.from_config(Config(elevenlabs_api_key="xi-test"))
        with patch.object(client._session, "post", return_value=_response()) as mock_post:
            audio = client.synthesize("Back at the fridge?")

        assert audio == b"ID3audio"
        url = mock_post.call_args.args[0]
        assert url == "https://api.elevenlabs.io/v1/text-to-speech/21m00Tcm4TlvDq8ikWAM"
        body = mock_post.call_args.kwargs["json"]
        assert body == {
            "text": "Back at the fridge?",
            "model_id": "eleven_monolingual_v1",
            "voice_settings": {"stability": 0.5, "similarity_boost": 0.5},
        }
        assert client._session.headers["xi-api-key"] == "xi-test"
        assert client._session.headers["Accept"] == "audio/mpeg"

    def test_http_error(self):
        client = SpeechClient(api_key="k", voice_id="v", model_id="m")
        with patch.object(client._session, "post", return_value=_response(status=401)):
            with pytest.raises(UpstreamError):
                client.synthesize("hi")

    def test_connection_error(self):
        client = SpeechClient(api_key="k", voice_id="v", model_id="m")
        with patch.object(
            client._session, "post", side_effect=requests.exceptions.ConnectionError("down")
        ):
            with pytest.raises(UpstreamError):
                client.synthesize("hi")

    def test_empty_body(self):
        client = SpeechClient(api_key="k", voice_id="v", model_id="m")
        with patch.object(client._session, "post", return_value=_response(content=b"")):
            with pytest.raises(InvalidResponse):
                client.synthesize("hi")


class TestAudioClip:
    def test_release_deletes_file_once(self):
        clip = AudioClip("hello", b"ID3data")
        assert os.path.exists(clip.path)
        with open(clip.path, "rb") as f:
            assert f.read() == b"ID3data"

        clip.release()
        clip.release()
        assert clip.released
        assert not os.path.exists(clip.path)

    @patch("observer.speech.subprocess.Popen")
    def test_release_terminates_running_player(self, mock_popen):
        process = MagicMock()
        process.poll.return_value = None
        mock_popen.return_value = process

        clip = AudioClip("hello", b"ID3data")
        clip.play(["ffplay", "-nodisp"])
        assert mock_popen.call_args.args[0] == ["ffplay", "-nodisp", clip.path]

        clip.release()
        process.terminate.assert_called_once()


class TestSpeechPlayer:
    def _client(self):
        client = MagicMock()
        client.synthesize.side_effect = lambda text: f"audio:{text}".encode()
        return client

    def test_new_text_releases_previous_clip(self):
        player = SpeechPlayer(self._client())
        assert player.speak("one")
        first = player.current

        assert player.speak("two")
        assert first.released
        assert player.current.text == "two"
        assert player.current.data == b"audio:two"
        player.close()

    def test_same_text_is_not_resynthesized(self):
        client = self._client()
        player = SpeechPlayer(client)
        player.speak("same")
        assert not player.speak("same")
        assert client.synthesize.call_count == 1
        player.close()

    def test_close_releases_and_disables(self):
        client = self._client()
        player = SpeechPlayer(client)
        player.speak("one")
        clip = player.current

        player.close()
        assert clip.released
        assert player.current is None
        assert not player.speak("two")
        client.close.assert_called_once()

    def test_failed_synthesis_keeps_previous_clip(self):
        client = self._client()
        player = SpeechPlayer(client)
        player.speak("one")
        client.synthesize.side_effect = UpstreamError("boom")

        with pytest.raises(UpstreamError):
            player.speak("two")
        assert player.current.text == "one"
        assert not player.current.released
        player.close()

    @patch("observer.speech.subprocess.Popen", side_effect=FileNotFoundError("ffplay"))
    def test_playback_failure_is_only_logged(self, mock_popen):
        player = SpeechPlayer(self._client(), player_command="ffplay -nodisp -autoexit")
        assert player.speak("one")
        assert mock_popen.call_args.args[0][:3] == ["ffplay", "-nodisp", "-autoexit"]
        player.close()

    def test_slow_older_synthesis_does_not_replace_newer_clip(self):
        old_started = threading.Event()
        release_old = threading.Event()

        def synthesize(text):
            if text == "old":
                old_started.set()
                assert release_old.wait(timeout=5)
            return f"audio:{text}".encode()

        client = MagicMock()
        client.synthesize.side_effect = synthesize
        player = SpeechPlayer(client)

        clips = []

        def make_clip(text, data):
            clip = AudioClip(text, data)
            clips.append(clip)
            return clip

        results = {}
        with patch("observer.speech.AudioClip", side_effect=make_clip):
            worker = threading.Thread(
                target=lambda: results.setdefault("old", player.speak("old", generation=1))
            )
            worker.start()
            assert old_started.wait(timeout=5)

            assert player.speak("new", generation=2)
            release_old.set()
            worker.join(timeout=5)

        assert not worker.is_alive()
        assert results["old"] is False
        assert player.current.text == "new"
        assert not player.current.released
        old_clip = next(c for c in clips if c.text == "old")
        assert old_clip.released
        assert not os.path.exists(old_clip.path)
        player.close()

    def test_older_generation_is_ignored_after_newer_clip(self):
        client = self._client()
        player = SpeechPlayer(client)
        assert player.speak("newer", generation=5)
        assert not player.speak("older", generation=3)
        assert player.current.text == "newer"
        assert client.synthesize.call_count == 1
        player.close()
