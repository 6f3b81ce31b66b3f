"""
Test conftest — isolate secret environment variables so that Settings()
in tests is not affected by real keys in the developer's or CI environment.
"""
import pytest

_SECRET_ENV_VARS = [
    "AOAI_API_KEY",
    "AOAI_API_ENDPOINT",
    "TRANSLATOR_API_KEY",
    "TRANSLATOR_API_ENDPOINT",
    "SEARCH_API_KEY",
    "SEARCH_API_ENDPOINT",
    "BING_API_KEY",
    "SQL_CONNECTION_STRING",
    "TELEGRAM_BOT_TOKEN",
    "PLUGBOT_CONFIG",
]


@pytest.fixture(autouse=True)
def _clear_secrets_from_env(monkeypatch):
    """Remove secret env vars for every test so Settings() behaves as if
    nothing is configured unless the test explicitly provides it.
    Also disables .env file loading so local developer .env files don't
    leak real credentials into tests."""
    for var in _SECRET_ENV_VARS:
        monkeypatch.delenv(var, raising=False)

    import config.settings as settings_module
    from pydantic_settings import SettingsConfigDict
    patched_config = SettingsConfigDict(
        env_file=None,
        env_file_encoding="utf-8",
        env_nested_delimiter="__",
        extra="ignore",
        case_sensitive=False,
    )
    monkeypatch.setattr(settings_module.Settings, "model_config", patched_config)
