import pytest

from utils.config import load_settings

ENV_NAMES = ("BOT_TOKEN", "BOT_OWNER", "BOT_PREFIX", "LOG_LEVEL", "DATA_DIR")


@pytest.fixture()
def clean_env(monkeypatch):
    # setenv first so that monkeypatch removes whatever load_dotenv leaves behind
    for name in ENV_NAMES:
        monkeypatch.setenv(name, "")
        monkeypatch.delenv(name)


def test_load_settings_missing_env(clean_env):
    with pytest.raises(RuntimeError, match="BOT_TOKEN"):
        load_settings()


def test_load_settings_reads_dotenv(tmp_path, monkeypatch, clean_env):
    env_file = tmp_path / ".env"
    env_file.write_text(
        "BOT_TOKEN=abc123\nLOG_LEVEL=DEBUG\nBOT_OWNER=15551234567\nBOT_PREFIX=!\n",
        encoding="utf-8",
    )
    monkeypatch.chdir(tmp_path)

    settings = load_settings()
    assert settings.bot_token == "abc123"
    assert settings.log_level == "DEBUG"
    assert settings.owner_id == "15551234567"
    assert settings.prefix == "!"


def test_blank_prefix_falls_back_to_dot(tmp_path, monkeypatch, clean_env):
    monkeypatch.chdir(tmp_path)
    monkeypatch.setenv("BOT_TOKEN", "abc123")
    monkeypatch.setenv("BOT_PREFIX", "   ")

    settings = load_settings()
    assert settings.prefix == "."
    assert settings.owner_id == ""


def test_log_level_is_normalised(tmp_path, monkeypatch, clean_env):
    monkeypatch.chdir(tmp_path)
    monkeypatch.setenv("BOT_TOKEN", "abc123")
    monkeypatch.setenv("LOG_LEVEL", "debug")
    assert load_settings().log_level == "DEBUG"

    monkeypatch.setenv("LOG_LEVEL", "chatty")
    assert load_settings().log_level == "INFO"
