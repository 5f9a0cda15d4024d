import pytest

from config import AgentSettings, Settings, load_agent_settings, load_settings


def test_load_settings_from_env(monkeypatch, tmp_path):
    monkeypatch.setenv("HUB_MODE", "PUSH")
    monkeypatch.setenv("ADMIN_TOKEN", "  s3cret ")
    monkeypatch.setenv("ONLINE_WINDOW_SECONDS", "45")
    monkeypatch.setenv("CORS_ORIGINS", "http://a.test, http://b.test")

    settings = load_settings(str(tmp_path / "missing.env"))

    assert settings.hub_mode == "push"
    assert settings.admin_token == "s3cret"
    assert settings.online_window_seconds == 45.0
    assert settings.cors_origins == ("http://a.test", "http://b.test")


def test_dotenv_file_is_read(monkeypatch, tmp_path):
    # set then delete so monkeypatch restores the variable afterwards
    monkeypatch.setenv("STATS_TOKEN", "placeholder")
    monkeypatch.delenv("STATS_TOKEN")
    env = tmp_path / ".env"
    env.write_text("STATS_TOKEN=from-file\n")

    assert load_settings(str(env)).stats_token == "from-file"


@pytest.mark.parametrize("kwargs", [
    {"hub_mode": "carrier-pigeon"},
    {"online_window_seconds": 0},
    {"queue_max": -1},
    {"script_prefix": "A:B"},
])
def test_invalid_settings(kwargs):
    with pytest.raises(ValueError):
        Settings(**kwargs)


def test_agent_interpreter_from_env(monkeypatch, tmp_path):
    monkeypatch.setenv("AGENT_SCRIPT_INTERPRETER", "bash --noprofile")
    monkeypatch.setenv("AGENT_SCRIPT_SUFFIX", ".sh")

    settings = load_agent_settings(str(tmp_path / "missing.env"))

    assert settings.script_interpreter == ["bash", "--noprofile"]
    assert settings.script_suffix == ".sh"


def test_invalid_agent_mode(monkeypatch, tmp_path):
    with pytest.raises(ValueError):
        AgentSettings(mode="carrier-pigeon")

    monkeypatch.setenv("AGENT_MODE", "bogus")
    with pytest.raises(ValueError):
        load_agent_settings(str(tmp_path / "missing.env"))


def test_agent_timeouts_from_env(monkeypatch, tmp_path):
    monkeypatch.setenv("AGENT_MODE", "Push")
    monkeypatch.setenv("AGENT_RECONNECT_SECONDS", "2.5")
    monkeypatch.setenv("AGENT_REQUEST_TIMEOUT", "3")

    settings = load_agent_settings(str(tmp_path / "missing.env"))

    assert settings.mode == "push"
    assert settings.reconnect_seconds == 2.5
    assert settings.request_timeout == 3.0
