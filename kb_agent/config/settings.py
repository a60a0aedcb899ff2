"""Application settings from environment variables and an optional YAML file.

Why: Single place that reads env/config files; every other layer receives
     settings via dependency injection. Settings are read once at startup.
"""

import os
from dataclasses import dataclass, field, replace
from pathlib import Path
from typing import Any
from urllib.parse import urlparse

import yaml

from kb_agent.domain.errors import ConfigurationError

LLM_PROVIDERS = ("ollama", "openai")
EMBEDDING_PROVIDERS = ("ollama", "openai", "huggingface")
LOG_LEVELS = ("DEBUG", "INFO", "WARNING", "ERROR", "CRITICAL")

CONFIG_ENV_VAR = "KB_AGENT_CONFIG"
CONFIG_FILE_NAME = "kb-agent.yaml"


def _env_bool(name: str, default: str) -> bool:
    return os.getenv(name, default).strip().lower() in ("1", "true", "yes", "on")


@dataclass(frozen=True)
class AppSettings:
    """Settings for every backend the agent talks to.

    Environment variables provide the defaults; a YAML file (see
    ``load_settings``) overrides them.
    """

    # ===== LLM Configuration =====
    llm_provider: str = field(
        default_factory=lambda: os.getenv("KB_LLM_PROVIDER", "ollama").lower()
    )
    llm_model: str = field(default_factory=lambda: os.getenv("KB_LLM_MODEL", "llama3.2:latest"))
    llm_base_url: str = field(default_factory=lambda: os.getenv("KB_LLM_BASE_URL", ""))
    # Empty = provider default (Ollama: http://localhost:11434/v1, OpenAI: api.openai.com)
    llm_api_key: str = field(default_factory=lambda: os.getenv("KB_LLM_API_KEY", ""))
    llm_timeout_s: float = field(
        default_factory=lambda: float(os.getenv("KB_LLM_TIMEOUT_S", "120"))
    )

    # ===== Embedding Configuration =====
    embedding_provider: str = field(
        default_factory=lambda: os.getenv("KB_EMBEDDING_PROVIDER", "ollama").lower()
    )
    embedding_model: str = field(
        default_factory=lambda: os.getenv("KB_EMBEDDING_MODEL", "nomic-embed-text:latest")
    )
    embedding_device: str = field(default_factory=lambda: os.getenv("KB_EMBEDDING_DEVICE", "cpu"))
    # Only used by the "huggingface" provider: "cpu" | "cuda" | "mps"

    # ===== Vector Store Configuration =====
    qdrant_url: str = field(
        default_factory=lambda: os.getenv("KB_QDRANT_URL", "http://localhost:6333")
    )
    qdrant_api_key: str = field(default_factory=lambda: os.getenv("KB_QDRANT_API_KEY", ""))
    qdrant_timeout_s: int = field(
        default_factory=lambda: int(os.getenv("KB_QDRANT_TIMEOUT_S", "30"))
    )
    collection: str = field(default_factory=lambda: os.getenv("KB_COLLECTION", "knowledge"))
    create_collection: bool = field(
        default_factory=lambda: _env_bool("KB_CREATE_COLLECTION", "false")
    )

    # ===== Retrieval / Chunking =====
    top_k: int = field(default_factory=lambda: int(os.getenv("KB_TOP_K", "4")))
    score_threshold: float = field(
        default_factory=lambda: float(os.getenv("KB_SCORE_THRESHOLD", "0.7"))
    )
    chunk_size: int = field(default_factory=lambda: int(os.getenv("KB_CHUNK_SIZE", "500")))
    chunk_overlap: int = field(default_factory=lambda: int(os.getenv("KB_CHUNK_OVERLAP", "50")))

    # ===== Logging =====
    log_level: str = field(default_factory=lambda: os.getenv("KB_LOG_LEVEL", "WARNING").upper())


# YAML section/key -> AppSettings field
_YAML_KEYS: dict[str, dict[str, str]] = {
    "llm": {
        "provider": "llm_provider",
        "model": "llm_model",
        "base_url": "llm_base_url",
        "api_key": "llm_api_key",
        "timeout_s": "llm_timeout_s",
    },
    "embedding": {
        "provider": "embedding_provider",
        "model": "embedding_model",
        "device": "embedding_device",
    },
    "qdrant": {
        "url": "qdrant_url",
        "api_key": "qdrant_api_key",
        "timeout_s": "qdrant_timeout_s",
        "collection": "collection",
        "create_collection": "create_collection",
        "top_k": "top_k",
        "score_threshold": "score_threshold",
        "chunk_size": "chunk_size",
        "chunk_overlap": "chunk_overlap",
    },
    "logging": {"level": "log_level"},
}

_INT_FIELDS = {"qdrant_timeout_s", "top_k", "chunk_size", "chunk_overlap"}
_FLOAT_FIELDS = {"llm_timeout_s", "score_threshold"}
_BOOL_FIELDS = {"create_collection"}


def default_config_locations() -> list[Path]:
    home = Path.home()
    return [
        Path.cwd() / f".{CONFIG_FILE_NAME}",  # Current directory
        home / f".{CONFIG_FILE_NAME}",  # Home directory
        home / ".config" / CONFIG_FILE_NAME,  # XDG config directory
        Path("/etc") / CONFIG_FILE_NAME,  # System-wide config
    ]


def discover_config_path() -> Path | None:
    explicit = os.getenv(CONFIG_ENV_VAR)
    if explicit:
        return Path(explicit)
    for loc in default_config_locations():
        if loc.is_file():
            return loc
    return None


def _coerce(name: str, value: Any) -> Any:
    try:
        if name in _BOOL_FIELDS:
            if isinstance(value, bool):
                return value
            return str(value).strip().lower() in ("1", "true", "yes", "on")
        if name in _INT_FIELDS:
            if isinstance(value, bool):
                raise ValueError("boolean is not an integer")
            return int(value)
        if name in _FLOAT_FIELDS:
            return float(value)
    except (TypeError, ValueError) as ex:
        raise ConfigurationError(f"invalid value for {name}: {value!r}") from ex
    return "" if value is None else str(value)


def _overrides_from_yaml(data: Any, path: Path) -> dict[str, Any]:
    if data is None:
        return {}
    if not isinstance(data, dict):
        raise ConfigurationError(f"config file {path} must contain a mapping")
    overrides: dict[str, Any] = {}
    for section, keys in _YAML_KEYS.items():
        values = data.get(section) or {}
        if not isinstance(values, dict):
            raise ConfigurationError(f"section '{section}' in {path} must be a mapping")
        for key, field_name in keys.items():
            if key in values:
                overrides[field_name] = _coerce(field_name, values[key])
    return overrides


def normalize_url(url: str) -> str:
    if url and not url.startswith(("http://", "https://")):
        url = "http://" + url
    return url


def validate_settings(settings: AppSettings) -> AppSettings:
    """Normalize and check settings; raise ConfigurationError on the first problem."""
    settings = replace(
        settings,
        llm_provider=settings.llm_provider.lower(),
        embedding_provider=settings.embedding_provider.lower(),
        qdrant_url=normalize_url(settings.qdrant_url.strip()),
        log_level=settings.log_level.upper(),
    )
    if settings.llm_provider not in LLM_PROVIDERS:
        raise ConfigurationError(f"unsupported LLM provider: {settings.llm_provider}")
    if settings.embedding_provider not in EMBEDDING_PROVIDERS:
        raise ConfigurationError(
            f"unsupported embedding provider: {settings.embedding_provider}"
        )
    parsed = urlparse(settings.qdrant_url)
    if not parsed.netloc:
        raise ConfigurationError(f"invalid Qdrant URL: {settings.qdrant_url!r}")
    if not settings.collection:
        raise ConfigurationError("collection name must not be empty")
    if settings.log_level not in LOG_LEVELS:
        raise ConfigurationError(f"unsupported log level: {settings.log_level}")
    if settings.top_k <= 0:
        raise ConfigurationError("top_k must be > 0")
    if settings.chunk_size <= 0:
        raise ConfigurationError("chunk_size must be > 0")
    if not 0 <= settings.chunk_overlap < settings.chunk_size:
        raise ConfigurationError("chunk_overlap must satisfy 0 <= chunk_overlap < chunk_size")
    return settings


def load_settings(path: str | Path | None = None) -> AppSettings:
    """Build validated settings from env defaults plus an optional YAML file.

    Args:
        path: Explicit config file; when omitted the file is discovered via
              KB_AGENT_CONFIG or the default locations (none found = env only).

    Raises:
        ConfigurationError: unreadable/invalid file or invalid values
    """
    try:
        settings = AppSettings()
    except ValueError as ex:
        raise ConfigurationError(f"invalid environment setting: {ex}") from ex

    config_path = Path(path) if path else discover_config_path()
    if config_path is not None:
        try:
            data = yaml.safe_load(config_path.read_text(encoding="utf-8"))
        except OSError as ex:
            raise ConfigurationError(f"failed to read config file {config_path}: {ex}") from ex
        except yaml.YAMLError as ex:
            raise ConfigurationError(f"failed to parse config file {config_path}: {ex}") from ex
        settings = replace(settings, **_overrides_from_yaml(data, config_path))

    return validate_settings(settings)
