"""
Pytest configuration for Inner Voice tests.

Remote endpoints are never contacted: analysis, speech and vector store are
replaced by fakes (see fakes.py), and analyses run on the ticking thread through the
executors in fakes.py unless a test supplies a real thread pool.
"""

import os

import pytest

from config import Config


@pytest.fixture(autouse=True)
def clean_env(monkeypatch):
    """Keep real credentials and overrides out of the tests."""
    for key in list(os.environ):
        if key.startswith("INNERVOICE_"):
            monkeypatch.delenv(key, raising=False)
    monkeypatch.delenv("ANTHROPIC_API_KEY", raising=False)
    monkeypatch.delenv("ELEVENLABS_API_KEY", raising=False)


@pytest.fixture
def config():
    return Config(anthropic_api_key="test-key", audio_player_command="")
