from config import DEFAULT_KEYWORDS, Config


def test_defaults():
    config = Config()
    assert config.capture_interval_seconds == 2.0
    assert config.analysis_temperature == 0.7
    assert config.analysis_max_tokens == 1024
    assert config.keywords == DEFAULT_KEYWORDS
    assert config.speak_on == "never"
    assert config.overlap_policy == "discard_stale"
    assert config.anthropic_api_key is None
    assert config.elevenlabs_api_key is None


def test_credentials_from_conventional_variables(monkeypatch):
    monkeypatch.setenv("ANTHROPIC_API_KEY", " sk-ant ")
    monkeypatch.setenv("ELEVENLABS_API_KEY", "xi")
    config = Config()
    assert config.anthropic_api_key == "sk-ant"
    assert config.elevenlabs_api_key == "xi"


def test_prefixed_overrides(monkeypatch):
    monkeypatch.setenv("INNERVOICE_CAPTURE_INTERVAL_SECONDS", "0.5")
    monkeypatch.setenv("INNERVOICE_KEYWORDS", "waterbottle, ,Mug")
    monkeypatch.setenv("INNERVOICE_SPEAK_ON", "onKeywordMatch")
    monkeypatch.setenv("INNERVOICE_VECTOR_STORE_ENABLED", "true")
    monkeypatch.setenv("INNERVOICE_SERVER_PORT", "9000")

    config = Config()
    assert config.capture_interval_seconds == 0.5
    assert config.keywords == ("waterbottle", "Mug")
    assert config.speak_on == "onKeywordMatch"
    assert config.vector_store_enabled is True
    assert config.server_port == 9000
