"""
config/settings.py — Plugbot Runtime Settings

Merges config.yaml (structure/defaults) with .env (secrets).
Pydantic-powered — all fields are validated and typed.

  - Field validators reject bad values at parse time
  - validate_all() performs cross-field startup validation and raises
    ConfigError with a numbered, human-readable list of every problem
  - load_settings() respects PLUGBOT_CONFIG as a fallback config path
"""

from __future__ import annotations

import os
from contextvars import ContextVar
from pathlib import Path
from typing import Any, List, Optional

import yaml
from pydantic import BaseModel, Field, field_validator
from pydantic.fields import FieldInfo
from pydantic_settings import BaseSettings, PydanticBaseSettingsSource, SettingsConfigDict


# ─────────────────────────────────────────────────────────────────────────────
# Errors
# ─────────────────────────────────────────────────────────────────────────────

class ConfigError(Exception):
    """Raised by validate_all() when one or more config problems are found."""


_VALID_LOG_LEVELS = {"DEBUG", "INFO", "WARNING", "ERROR", "CRITICAL"}
_VALID_PROVIDERS = {"openai", "azure"}
_VALID_STRATEGIES = {"direct", "stepwise"}


# ─────────────────────────────────────────────────────────────────────────────
# Sub-models
# ─────────────────────────────────────────────────────────────────────────────

class BotConfig(BaseModel):
    name: str = "Plugbot"
    version: str = "1.0.0"
    welcome_message: str = "Hello! Ask me anything, or try one of the suggestions below."
    system_message: str = (
        "You are a helpful assistant. Use the available skills to answer "
        "the user's latest message."
    )
    suggested_questions: List[str] = Field(default_factory=list)

    @field_validator("suggested_questions", mode="before")
    @classmethod
    def _parse_questions(cls, v: Any) -> Any:
        # BOT__SUGGESTED_QUESTIONS arrives as a JSON string from the environment
        if isinstance(v, str):
            import json
            parsed = json.loads(v) if v.strip() else []
            if not isinstance(parsed, list):
                raise ValueError("bot.suggested_questions must be a JSON list of strings")
            return parsed
        return v


class LLMRetryConfig(BaseModel):
    """Exponential backoff config for transient LLM errors."""
    max_attempts: int = 3
    base_delay: float = 1.0
    max_delay: float = 30.0


class LLMConfig(BaseModel):
    provider: str = "azure"
    chat_model: str = "gpt-4o"
    image_model: str = "dall-e-3"
    embeddings_model: str = "text-embedding-3-small"
    api_version: str = "2024-06-01"
    temperature: float = 0.7
    max_tokens: int = 4096
    retry: LLMRetryConfig = Field(default_factory=LLMRetryConfig)

    @field_validator("provider")
    @classmethod
    def _known_provider(cls, v: str) -> str:
        v = v.lower().strip()
        if v not in _VALID_PROVIDERS:
            raise ValueError(
                f"llm.provider '{v}' is not supported. "
                f"Supported: {sorted(_VALID_PROVIDERS)}"
            )
        return v

    @field_validator("temperature")
    @classmethod
    def _valid_temperature(cls, v: float) -> float:
        if not (0.0 <= v <= 2.0):
            raise ValueError("llm.temperature must be between 0.0 and 2.0")
        return v

    @field_validator("max_tokens")
    @classmethod
    def _positive_tokens(cls, v: int) -> int:
        if v < 1:
            raise ValueError("llm.max_tokens must be >= 1")
        return v


class PlannerConfig(BaseModel):
    strategy: str = "direct"
    max_tokens: int = 128_000
    max_iterations: int = 10

    @field_validator("strategy")
    @classmethod
    def _valid_strategy(cls, v: str) -> str:
        v = v.lower().strip()
        if v not in _VALID_STRATEGIES:
            raise ValueError(
                f"planner.strategy must be one of {sorted(_VALID_STRATEGIES)}, got '{v}'"
            )
        return v

    @field_validator("max_tokens", "max_iterations")
    @classmethod
    def _positive(cls, v: int) -> int:
        if v < 1:
            raise ValueError("planner budgets must be >= 1")
        return v


class SearchConfig(BaseModel):
    index: str = "documents"
    semantic_config: str = "default"
    top: int = 3
    api_version: str = "2023-11-01"


class TranslatorConfig(BaseModel):
    region: str = "eastus2"
    timeout_seconds: float = 15.0


class LoggingConfig(BaseModel):
    level: str = "INFO"
    log_dir: str = "./data/logs"
    max_file_size_mb: int = 100
    backup_count: int = 5
    console_output: bool = False
    json_format: bool = True

    @field_validator("level")
    @classmethod
    def _valid_log_level(cls, v: str) -> str:
        upper = v.upper()
        if upper not in _VALID_LOG_LEVELS:
            raise ValueError(
                f"logging.level '{v}' is not valid. "
                f"Must be one of: {sorted(_VALID_LOG_LEVELS)}"
            )
        return upper


# ─────────────────────────────────────────────────────────────────────────────
# Root Settings
# ─────────────────────────────────────────────────────────────────────────────

class Settings(BaseSettings):
    """
    Plugbot runtime settings.

    Priority (highest to lowest):
      1. Environment variables
      2. .env file
      3. config.yaml
      4. Field defaults
    """

    model_config = SettingsConfigDict(
        env_file=".env",
        env_file_encoding="utf-8",
        env_nested_delimiter="__",
        extra="ignore",
        case_sensitive=False,
    )

    # -- Secrets / endpoints from .env ---------------------------------------
    aoai_api_key: Optional[str] = Field(default=None, alias="AOAI_API_KEY")
    aoai_api_endpoint: Optional[str] = Field(default=None, alias="AOAI_API_ENDPOINT")
    translator_api_key: Optional[str] = Field(default=None, alias="TRANSLATOR_API_KEY")
    translator_api_endpoint: Optional[str] = Field(default=None, alias="TRANSLATOR_API_ENDPOINT")
    search_api_key: Optional[str] = Field(default=None, alias="SEARCH_API_KEY")
    search_api_endpoint: Optional[str] = Field(default=None, alias="SEARCH_API_ENDPOINT")
    bing_api_key: Optional[str] = Field(default=None, alias="BING_API_KEY")
    sql_connection_string: Optional[str] = Field(default=None, alias="SQL_CONNECTION_STRING")
    telegram_bot_token: Optional[str] = Field(default=None, alias="TELEGRAM_BOT_TOKEN")

    # -- Structured config (from config.yaml) --------------------------------
    bot: BotConfig = Field(default_factory=BotConfig)
    llm: LLMConfig = Field(default_factory=LLMConfig)
    planner: PlannerConfig = Field(default_factory=PlannerConfig)
    search: SearchConfig = Field(default_factory=SearchConfig)
    translator: TranslatorConfig = Field(default_factory=TranslatorConfig)
    supported_languages: dict[str, str] = Field(default_factory=dict)
    logging: LoggingConfig = Field(default_factory=LoggingConfig)

    @classmethod
    def settings_customise_sources(
        cls,
        settings_cls: type[BaseSettings],
        init_settings: PydanticBaseSettingsSource,
        env_settings: PydanticBaseSettingsSource,
        dotenv_settings: PydanticBaseSettingsSource,
        file_secret_settings: PydanticBaseSettingsSource,
    ) -> tuple[PydanticBaseSettingsSource, ...]:
        return (
            init_settings,
            env_settings,
            dotenv_settings,
            YamlSectionsSource(settings_cls),
            file_secret_settings,
        )

    @field_validator("supported_languages", mode="before")
    @classmethod
    def _coerce_languages(cls, v: Any) -> Any:
        if v is None:
            return {}
        if isinstance(v, dict):
            return {str(code).strip(): str(name).strip() for code, name in v.items()}
        return v

    # -- Convenience properties ----------------------------------------------

    @property
    def use_stepwise_planner(self) -> bool:
        return self.planner.strategy == "stepwise"

    @property
    def translator_configured(self) -> bool:
        return bool(self.translator_api_key and self.translator_api_endpoint)

    @property
    def search_configured(self) -> bool:
        return bool(self.search_api_endpoint and self.search_api_key)

    @property
    def log_level(self) -> str:
        return self.logging.level.upper()

    @property
    def log_dir(self) -> Path:
        return Path(self.logging.log_dir)

    def validate_required_for_interface(self, interface: str) -> list[str]:
        """Return the missing secrets a given interface needs."""
        missing = []
        if interface == "telegram" and not self.telegram_bot_token:
            missing.append("TELEGRAM_BOT_TOKEN")
        if not self.aoai_api_key:
            missing.append("AOAI_API_KEY")
        return missing

    def validate_all(self) -> None:
        """
        Full startup validation. Raises ConfigError listing every problem found.

        Pydantic field validators catch type/value errors at parse time; this
        method catches cross-field problems (keys paired with endpoints, the
        provider's endpoint requirement, language table sanity).
        """
        errors: list[str] = []

        if not self.aoai_api_key:
            errors.append("AOAI_API_KEY must be set in your .env file.")

        if self.llm.provider == "azure" and not self.aoai_api_endpoint:
            errors.append("llm.provider 'azure' requires AOAI_API_ENDPOINT.")

        if bool(self.translator_api_key) != bool(self.translator_api_endpoint):
            errors.append(
                "TRANSLATOR_API_KEY and TRANSLATOR_API_ENDPOINT must be set together."
            )

        if bool(self.search_api_key) != bool(self.search_api_endpoint):
            errors.append(
                "SEARCH_API_KEY and SEARCH_API_ENDPOINT must be set together."
            )

        for code, name in self.supported_languages.items():
            if not code or not name:
                errors.append(
                    f"supported_languages has an empty code or name: '{code}': '{name}'."
                )

        if errors:
            numbered = "\n".join(f"  {i+1}. {e}" for i, e in enumerate(errors))
            raise ConfigError(
                f"\n\nPlugbot startup failed — {len(errors)} configuration "
                f"problem(s) found:\n\n{numbered}\n\n"
                f"Fix the issues above in config/config.yaml or your .env file "
                f"and restart.\n"
            )


# ─────────────────────────────────────────────────────────────────────────────
# YAML source + loader
# ─────────────────────────────────────────────────────────────────────────────

_KNOWN_SECTIONS = {
    "bot", "llm", "planner", "search", "translator",
    "supported_languages", "logging",
}

# Sections read from config.yaml by the active load_settings() call
_yaml_sections: ContextVar[dict] = ContextVar("plugbot_yaml_sections", default={})


class YamlSectionsSource(PydanticBaseSettingsSource):
    """
    Feeds the config.yaml sections into Settings below env and .env, so
    PLANNER__STRATEGY=stepwise overrides `planner.strategy` from the file
    while the other planner keys keep their YAML values.
    """

    def get_field_value(self, field: FieldInfo, field_name: str) -> tuple[Any, str, bool]:
        return _yaml_sections.get().get(field_name), field_name, False

    def __call__(self) -> dict[str, Any]:
        return {
            name: value
            for name, value in _yaml_sections.get().items()
            if name in self.settings_cls.model_fields and value is not None
        }


def _load_yaml(path: Path) -> dict:
    if not path.exists():
        return {}
    with path.open("r", encoding="utf-8") as f:
        return yaml.safe_load(f) or {}


def _resolve_config_path(config_path: str | Path | None) -> Path:
    """
    Resolve the config file path:
      1. Explicit config_path argument (--config CLI flag)
      2. PLUGBOT_CONFIG environment variable
      3. Default: config/config.yaml
    """
    if config_path is not None:
        return Path(config_path)
    env_path = os.environ.get("PLUGBOT_CONFIG")
    if env_path:
        return Path(env_path)
    return Path("config/config.yaml")


def load_settings(config_path: str | Path | None = None) -> Settings:
    """Load settings: config.yaml sections, overridden by .env and the environment."""
    yaml_data = _load_yaml(_resolve_config_path(config_path))
    sections = {k: v for k, v in yaml_data.items() if k in _KNOWN_SECTIONS}
    token = _yaml_sections.set(sections)
    try:
        return Settings()
    finally:
        _yaml_sections.reset(token)
