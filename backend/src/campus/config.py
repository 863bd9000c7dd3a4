# backend/src/campus/config.py
"""Configuration system for the Campus Connect backend.

This module handles loading settings from environment variables and an INI
file, providing sensible defaults, and computing derived paths inside the
data directory.
"""

from configparser import ConfigParser
from dataclasses import dataclass
from functools import lru_cache
from pathlib import Path
from typing import Any, Optional
import os


class ConfigError(Exception):
    """Raised when configuration validation fails."""

    pass


# Schema: section -> key -> (type, default, min, max, description)
CONFIG_SCHEMA: dict[str, dict[str, tuple[type, Any, Any, Any, str]]] = {
    "retrieval": {
        "search_top_k": (int, 10, 1, 100, "Default results for semantic search"),
        "chat_top_k": (int, 5, 1, 50, "Posts used as chat context"),
        "max_search_limit": (int, 50, 1, 500, "Upper bound on the search limit parameter"),
        "similarity_decimals": (int, 2, 0, 6, "Decimals kept when presenting similarity"),
    },
    "chat": {
        "max_question_length": (int, 500, 10, 10000, "Questions are truncated to this length"),
        "max_history_turns": (int, 20, 0, 200, "Most recent history turns kept"),
        "temperature": (float, 0.7, 0.0, 2.0, "Temperature for chat answers"),
    },
    "enrichment": {
        "summary_min_length": (int, 50, 0, 1000, "Shorter bodies are used as their own summary"),
        "summary_max_chars": (int, 150, 20, 1000, "Length of the fallback summary"),
        "max_tags": (int, 5, 1, 20, "Maximum generated tags per post"),
    },
    "leaderboard": {
        "default_limit": (int, 20, 1, 200, "Default leaderboard size"),
        "month_days": (int, 30, 1, 365, "Window used by the 'month' time range"),
    },
    "llm": {
        "max_tokens": (int, 8192, 256, 32768, "Max response tokens"),
        "default_temperature": (float, 0.7, 0.0, 2.0, "Default LLM temperature"),
        "json_temperature": (float, 0.3, 0.0, 1.0, "Temperature for structured output"),
    },
    "paths": {
        "db_file": (str, "campus.db", None, None, "SQLite database file name"),
        "logs_dir": (str, "logs", None, None, "Logs directory name"),
    },
}


@dataclass(frozen=True)
class RetrievalConfig:
    """Candidate retrieval configuration."""

    search_top_k: int
    chat_top_k: int
    max_search_limit: int
    similarity_decimals: int


@dataclass(frozen=True)
class ChatConfig:
    """Chat assistant configuration."""

    max_question_length: int
    max_history_turns: int
    temperature: float


@dataclass(frozen=True)
class EnrichmentConfig:
    """Post enrichment configuration."""

    summary_min_length: int
    summary_max_chars: int
    max_tags: int


@dataclass(frozen=True)
class LeaderboardConfig:
    """Leaderboard configuration."""

    default_limit: int
    month_days: int


@dataclass(frozen=True)
class LLMConfig:
    """LLM client configuration."""

    max_tokens: int
    default_temperature: float
    json_temperature: float


@dataclass(frozen=True)
class PathsConfig:
    """Path names configuration."""

    db_file: str
    logs_dir: str


_SECTION_TYPES: dict[str, type] = {
    "retrieval": RetrievalConfig,
    "chat": ChatConfig,
    "enrichment": EnrichmentConfig,
    "leaderboard": LeaderboardConfig,
    "llm": LLMConfig,
    "paths": PathsConfig,
}


def _defaults(section: str) -> dict[str, Any]:
    return {key: default for key, (_, default, _, _, _) in CONFIG_SCHEMA[section].items()}


_TRUE_VALUES = ("true", "1", "yes", "on")


def _parse_value(section: str, key: str, typ: type, raw: str) -> Any:
    if typ is bool:
        return raw.strip().lower() in _TRUE_VALUES
    if typ is str:
        return raw
    try:
        return typ(raw)
    except ValueError as e:
        raise ConfigError(f"[{section}].{key} must be {typ.__name__}, got {raw!r}") from e


def _load_section(parser: ConfigParser, section: str) -> dict[str, Any]:
    """Read one section, falling back to schema defaults.

    Raises:
        ConfigError: If a value has the wrong type or is out of range.
    """
    values: dict[str, Any] = {}
    for key, (typ, default, low, high, _) in CONFIG_SCHEMA[section].items():
        raw = parser.get(section, key, fallback=None)
        value = default if raw is None else _parse_value(section, key, typ, raw)
        if typ in (int, float):
            if low is not None and value < low:
                raise ConfigError(f"[{section}].{key} = {value} is below the minimum of {low}")
            if high is not None and value > high:
                raise ConfigError(f"[{section}].{key} = {value} is above the maximum of {high}")
        values[key] = value
    return values


def _load_config(config_path: Optional[Path] = None) -> "Config":
    """Build a Config from an INI file, or from schema defaults when there is none.

    data_dir is a placeholder here; load_settings() fills it in from
    CAMPUS_DATA_DIR.
    """
    parser = ConfigParser()
    if config_path is not None and config_path.exists():
        parser.read(config_path)

    sections = {
        name: section_type(**_load_section(parser, name))
        for name, section_type in _SECTION_TYPES.items()
    }
    return Config(data_dir=Path("."), **sections)


@dataclass(frozen=True)
class Config:
    """Complete application configuration."""

    data_dir: Path
    environment: str = "production"
    active_provider: str = "ollama"
    active_model: str = "llama2"
    embedding_model: str = "text-embedding-3-small"
    embedding_backend: str = "litellm"
    openai_api_key: Optional[str] = None
    anthropic_api_key: Optional[str] = None
    google_api_key: Optional[str] = None
    ollama_endpoint: str = "http://localhost:11434"

    # Section configs, defaults set in __post_init__
    retrieval: RetrievalConfig = None  # type: ignore[assignment]
    chat: ChatConfig = None  # type: ignore[assignment]
    enrichment: EnrichmentConfig = None  # type: ignore[assignment]
    leaderboard: LeaderboardConfig = None  # type: ignore[assignment]
    llm: LLMConfig = None  # type: ignore[assignment]
    paths: PathsConfig = None  # type: ignore[assignment]

    def __post_init__(self):
        """Initialize section configs with defaults if not provided."""
        # frozen=True, so object.__setattr__ is required
        for name, section_type in _SECTION_TYPES.items():
            if getattr(self, name) is None:
                object.__setattr__(self, name, section_type(**_defaults(name)))

    @property
    def db_path(self) -> Path:
        return self.data_dir / self.paths.db_file

    @property
    def config_path(self) -> Path:
        return self.data_dir / "config.ini"

    @property
    def llm_log_path(self) -> Path:
        """JSONL file the LLM client appends every request to."""
        return self.data_dir / self.paths.logs_dir / "llm-queries.jsonl"

    @property
    def is_development(self) -> bool:
        """Whether failure responses may carry the underlying error."""
        return self.environment == "development"

    @property
    def llm_provider(self) -> str:
        return self.active_provider

    @property
    def llm_model(self) -> str:
        return self.active_model

    @property
    def llm_api_key(self) -> Optional[str]:
        field = _API_KEY_FIELDS.get(self.active_provider)
        return getattr(self, field) if field else None

    @property
    def llm_endpoint(self) -> Optional[str]:
        """Only Ollama is reached through an explicit endpoint."""
        return self.ollama_endpoint if self.active_provider == "ollama" else None

    @property
    def use_mock_embeddings(self) -> bool:
        """Hash-based offline embeddings instead of a provider call."""
        return self.embedding_backend == "mock"


_API_KEY_FIELDS = {
    "openai": "openai_api_key",
    "anthropic": "anthropic_api_key",
    "google": "google_api_key",
    "gemini": "google_api_key",
}

PROVIDER_DEFAULT_MODELS = {
    "openai": "gpt-4o",
    "anthropic": "claude-3-5-sonnet-20241022",
    "gemini": "gemini-2.5-flash",
    "ollama": "llama2",
}

PROVIDER_DEFAULT_EMBEDDINGS = {
    "openai": "text-embedding-3-small",
    "anthropic": "text-embedding-3-small",
    "gemini": "gemini-embedding-001",
    "ollama": "nomic-embed-text",
}

# First key found wins
_PROVIDER_KEY_VARS = (
    ("openai", ("OPENAI_API_KEY",)),
    ("anthropic", ("ANTHROPIC_API_KEY",)),
    ("gemini", ("GEMINI_API_KEY", "GOOGLE_API_KEY")),
)


def _provider_from_keys() -> str:
    """The provider whose API key is set, or ollama when none is."""
    for provider, variables in _PROVIDER_KEY_VARS:
        if any(os.getenv(name) for name in variables):
            return provider
    return "ollama"


def _data_dir() -> Path:
    configured = os.getenv("CAMPUS_DATA_DIR")
    return Path(configured) if configured else Path.home() / ".campus"


@lru_cache(maxsize=1)
def load_settings() -> Config:
    """Settings from the environment and the optional config.ini in the data directory.

    Cached; call load_settings.cache_clear() to pick up changes.
    """
    data_dir = _data_dir()
    config_file = data_dir / "config.ini"
    try:
        has_file = config_file.exists()
    except PermissionError:
        has_file = False
    sections = _load_config(config_file if has_file else None)

    provider = os.getenv("ACTIVE_PROVIDER") or _provider_from_keys()
    model = os.getenv("ACTIVE_MODEL") or PROVIDER_DEFAULT_MODELS.get(provider, "llama2")
    embedding_model = os.getenv("EMBEDDING_MODEL") or PROVIDER_DEFAULT_EMBEDDINGS.get(
        provider, "text-embedding-3-small"
    )

    return Config(
        data_dir=data_dir,
        environment=os.getenv("CAMPUS_ENV", "production").lower(),
        active_provider=provider,
        active_model=model,
        embedding_model=embedding_model,
        embedding_backend=os.getenv("EMBEDDING_BACKEND", "litellm").lower(),
        openai_api_key=os.getenv("OPENAI_API_KEY"),
        anthropic_api_key=os.getenv("ANTHROPIC_API_KEY"),
        google_api_key=os.getenv("GEMINI_API_KEY") or os.getenv("GOOGLE_API_KEY"),
        ollama_endpoint=os.getenv("OLLAMA_ENDPOINT", "http://localhost:11434"),
        **{name: getattr(sections, name) for name in _SECTION_TYPES},
    )


Settings = Config
