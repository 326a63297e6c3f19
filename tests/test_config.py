import configparser

import pytest

from tidal_cli.exceptions import ConfigurationError
from tidal_cli.models.config import DEFAULT_API_URL, TidalConfig
from tidal_cli.storage import ConfigManager
from tidal_cli.storage.config_manager import ENV_OVERRIDES


@pytest.fixture(autouse=True)
def clean_env(monkeypatch):
    for env in ENV_OVERRIDES:
        monkeypatch.delenv(env, raising=False)


@pytest.fixture
def manager(tmp_path) -> ConfigManager:
    return ConfigManager(tmp_path / "config.ini")


def test_saved_config_loads_back(manager):
    manager.save_new_config(
        {
            "client_id": "abc",
            "client_secret": "xyz",
            "audio_quality": "LOSSLESS",
            "cache_capacity_mb": 256,
        }
    )

    config = manager.load_config()

    assert config.client_id == "abc"
    assert config.client_secret == "xyz"
    assert config.audio_quality == "LOSSLESS"
    assert config.cache_capacity_bytes == 256 * 1024 * 1024
    assert config.api_url == DEFAULT_API_URL


def test_missing_file_without_environment_is_an_error(manager):
    with pytest.raises(ConfigurationError, match="init"):
        manager.load_config()


def test_environment_alone_is_enough(manager, monkeypatch, tmp_path):
    monkeypatch.setenv("TIDAL_CLIENT_ID", "env-id")
    monkeypatch.setenv("TIDAL_CLIENT_SECRET", "env-secret")
    monkeypatch.setenv("TIDAL_TOKEN_SESSION_PATH", str(tmp_path / "session.json"))

    config = manager.load_config()

    assert config.client_id == "env-id"
    assert config.credential_path == tmp_path / "session.json"


def test_environment_overrides_file_and_cli_overrides_both(manager, monkeypatch):
    manager.save_new_config({"client_id": "file-id", "client_secret": "file-secret"})
    monkeypatch.setenv("TIDAL_CLIENT_ID", "env-id")

    config = manager.load_config({"audio_quality": "low"})

    assert config.client_id == "env-id"
    assert config.client_secret == "file-secret"
    assert config.audio_quality == "LOW"


def test_missing_keys_are_migrated_into_the_file(manager):
    manager.config_file_path.write_text(
        "[DEFAULT]\nclient_id = abc\nclient_secret = xyz\n", encoding="utf-8"
    )

    config = manager.load_config()

    parser = configparser.ConfigParser(interpolation=None)
    parser.read(manager.config_file_path)
    assert set(parser["DEFAULT"]) == TidalConfig.get_ini_keys()
    assert parser["DEFAULT"]["client_id"] == "abc"
    assert config.cache_capacity_mb == 1024


@pytest.mark.parametrize(
    "overrides",
    [
        {"audio_quality": "ULTRA"},
        {"cache_capacity_mb": 0},
        {"api_url": "ftp://example.com"},
        {"client_secret": ""},
    ],
)
def test_invalid_values_are_rejected(manager, overrides):
    manager.save_new_config({"client_id": "abc", "client_secret": "xyz"})

    with pytest.raises(ConfigurationError):
        manager.load_config(overrides)


def test_urls_lose_trailing_slashes():
    config = TidalConfig(
        client_id="abc", client_secret="xyz", api_url="https://api.example/v1/"
    )

    assert config.api_url == "https://api.example/v1"
