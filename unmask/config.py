"""UNMASK Configuration System.

Loads and validates configuration from ~/.unmask/config.json.
Uses Pydantic for schema validation with sensible defaults.

Supports migration from older config versions while preserving existing values.
A few settings can be overridden from the environment:

    UNMASK_CONFIG_PATH  - alternate config file location
    UNMASK_DB_PATH      - alternate SQLite database path
    OPENAI_API_KEY      - OpenAI key for completions and embeddings

Usage:
    from unmask.config import get_config, save_config

    config = get_config()
    print(config.database.path)
    print(config.chunking.gap_minutes)
"""

from __future__ import annotations

import json
import logging
import os
import threading
from collections.abc import Callable
from pathlib import Path
from typing import Any, Literal

from pydantic import BaseModel, Field, ValidationError

logger = logging.getLogger(__name__)

UNMASK_HOME = Path.home() / ".unmask"
CONFIG_PATH = Path(os.environ.get("UNMASK_CONFIG_PATH", UNMASK_HOME / "config.json"))

# Current config schema version for migration tracking
CONFIG_VERSION = 3


class DatabaseConfig(BaseModel):
    """SQLite database settings.

    Attributes:
        path: Location of the database file.
        default_relationship_id: Relationship that events and chunks attach to
            when the caller does not name one.
    """

    path: str = str(UNMASK_HOME / "unmask.db")
    default_relationship_id: int = Field(default=1, ge=1)


class LLMConfig(BaseModel):
    """OpenAI completion and embedding settings.

    Attributes:
        api_key: OpenAI API key. Empty string disables LLM calls.
        chat_model: Model used for agent and RAG completions.
        embedding_model: Model used for chunk and query embeddings.
        embedding_dimension: Length of embedding vectors stored in the index.
        temperature: Sampling temperature for completions.
        max_tokens: Maximum tokens per completion.
        timeout_seconds: Per-request timeout passed to the SDK.
    """

    api_key: str = ""
    chat_model: str = "gpt-4o-mini"
    embedding_model: str = "text-embedding-3-small"
    embedding_dimension: int = Field(default=1536, ge=8, le=4096)
    temperature: float = Field(default=0.7, ge=0.0, le=2.0)
    max_tokens: int = Field(default=800, ge=1, le=4096)
    timeout_seconds: float = Field(default=30.0, ge=1.0, le=300.0)


class ChunkingConfig(BaseModel):
    """Conversation chunking and vectorization settings.

    Attributes:
        gap_minutes: A gap longer than this between consecutive messages
            starts a new conversation chunk.
        max_embedding_chars: Conversation text kept in the embedding input.
        max_metadata_chars: Conversation text kept in vector metadata.
        batch_size: Default number of messages per populate batch.
        index_name: Name reported for the vector index.
    """

    gap_minutes: int = Field(default=30, ge=1, le=1440)
    max_embedding_chars: int = Field(default=2000, ge=100, le=32000)
    max_metadata_chars: int = Field(default=1000, ge=100, le=8000)
    batch_size: int = Field(default=1000, ge=1, le=10000)
    index_name: str = "relationship-insights-1536"


class OrchestratorConfig(BaseModel):
    """Agent orchestration settings.

    Attributes:
        intent_mode: "keyword" uses the keyword classifier, "llm" asks the
            chat model to pick an intent label.
        context_cache_ttl_seconds: How long a loaded user context is reused.
        history_limit: Number of prior chat turns passed to the classifier.
        default_user_id: User id for the single-user deployment.
    """

    intent_mode: Literal["keyword", "llm"] = "keyword"
    context_cache_ttl_seconds: float = Field(default=300.0, ge=0.0, le=86400.0)
    history_limit: int = Field(default=10, ge=0, le=100)
    default_user_id: str = "default-user"


class RateLimitConfig(BaseModel):
    """Rate limiting configuration for the API.

    Attributes:
        enabled: Whether rate limiting is enabled.
        default_limit: Limit applied to every endpoint.
        llm_limit: Limit for endpoints that call the LLM.
    """

    enabled: bool = True
    default_limit: str = "100/minute"
    llm_limit: str = "10/minute"


class ServerConfig(BaseModel):
    """HTTP server settings used by `unmask serve`."""

    host: str = "127.0.0.1"
    port: int = Field(default=8600, ge=1, le=65535)
    cors_origins: list[str] = Field(
        default_factory=lambda: ["http://localhost:3000", "http://127.0.0.1:3000"]
    )


class UnmaskConfig(BaseModel):
    """Root configuration model."""

    config_version: int = CONFIG_VERSION
    database: DatabaseConfig = Field(default_factory=DatabaseConfig)
    llm: LLMConfig = Field(default_factory=LLMConfig)
    chunking: ChunkingConfig = Field(default_factory=ChunkingConfig)
    orchestrator: OrchestratorConfig = Field(default_factory=OrchestratorConfig)
    rate_limit: RateLimitConfig = Field(default_factory=RateLimitConfig)
    server: ServerConfig = Field(default_factory=ServerConfig)


# Singleton
_config: UnmaskConfig | None = None
_config_lock = threading.Lock()


def _migrate_v1_to_v2(data: dict[str, Any]) -> dict[str, Any]:
    """Migrate from v1 to v2: Move flat openai_* keys under the llm section."""
    llm = data.setdefault("llm", {})
    for legacy_key, new_key in (
        ("openai_api_key", "api_key"),
        ("openai_model", "chat_model"),
        ("embedding_model", "embedding_model"),
    ):
        if legacy_key in data:
            llm.setdefault(new_key, data.pop(legacy_key))
    return data


def _migrate_v2_to_v3(data: dict[str, Any]) -> dict[str, Any]:
    """Migrate from v2 to v3: Add orchestrator and rate_limit sections."""
    data.setdefault("orchestrator", {})
    data.setdefault("rate_limit", {})
    chunking = data.get("chunking", {})
    if "gap_ms" in chunking:
        logger.info("Migrating chunking.gap_ms to chunking.gap_minutes")
        chunking["gap_minutes"] = max(1, int(chunking.pop("gap_ms")) // 60000)
    return data


_MIGRATIONS: dict[int, Callable[[dict[str, Any]], dict[str, Any]]] = {
    2: _migrate_v1_to_v2,
    3: _migrate_v2_to_v3,
}


def _migrate_config(data: dict[str, Any]) -> dict[str, Any]:
    """Migrate config data from older versions to the current schema.

    Args:
        data: Raw config data loaded from file.

    Returns:
        Migrated config data compatible with current schema.
    """
    version = data.get("config_version", 1)

    for target_version in sorted(_MIGRATIONS.keys()):
        if version < target_version:
            logger.info("Migrating config from version %d to %d", version, target_version)
            data = _MIGRATIONS[target_version](data)
            version = target_version

    data["config_version"] = CONFIG_VERSION
    return data


def _apply_env_overrides(config: UnmaskConfig) -> UnmaskConfig:
    """Apply environment variable overrides on top of file values."""
    db_path = os.environ.get("UNMASK_DB_PATH")
    if db_path:
        config.database.path = db_path
    api_key = os.environ.get("OPENAI_API_KEY")
    if api_key:
        config.llm.api_key = api_key
    return config


def load_config(config_path: Path | None = None) -> UnmaskConfig:
    """Load configuration from file, return defaults if missing/invalid.

    Automatically migrates older config versions while preserving existing values.
    If migration occurs, the updated config is saved back to disk.

    Args:
        config_path: Optional path to config file. Defaults to ~/.unmask/config.json.

    Returns:
        UnmaskConfig instance with loaded or default values.
    """
    path = config_path or CONFIG_PATH

    if not path.exists():
        logger.debug("Config file not found at %s, using defaults", path)
        return _apply_env_overrides(UnmaskConfig())

    try:
        with path.open() as f:
            data: dict[str, Any] = json.load(f)
    except json.JSONDecodeError as e:
        logger.warning("Invalid JSON in config file %s: %s, using defaults", path, e)
        return _apply_env_overrides(UnmaskConfig())
    except OSError as e:
        logger.warning("Cannot read config file %s: %s, using defaults", path, e)
        return _apply_env_overrides(UnmaskConfig())

    original_version = data.get("config_version", 1)
    data = _migrate_config(data)

    try:
        config = UnmaskConfig.model_validate(data)
    except ValidationError as e:
        logger.warning("Config validation failed: %s, using defaults", e)
        return _apply_env_overrides(UnmaskConfig())

    if original_version < CONFIG_VERSION:
        logger.info("Persisting migrated config (v%d -> v%d)", original_version, CONFIG_VERSION)
        save_config(config, path)

    return _apply_env_overrides(config)


def save_config(config: UnmaskConfig, config_path: Path | None = None) -> bool:
    """Save configuration to file.

    Args:
        config: Configuration to save.
        config_path: Optional path to config file. Defaults to ~/.unmask/config.json.

    Returns:
        True if saved successfully, False otherwise.
    """
    path = config_path or CONFIG_PATH

    try:
        path.parent.mkdir(parents=True, exist_ok=True)
        with path.open("w") as f:
            json.dump(config.model_dump(), f, indent=2)
        # Config may hold the OpenAI key
        os.chmod(path, 0o600)
        logger.debug("Configuration saved to %s", path)
        return True
    except OSError as e:
        logger.error("Failed to save config to %s: %s", path, e)
        return False


def get_config() -> UnmaskConfig:
    """Get singleton configuration instance.

    Uses double-check locking for thread safety.

    Returns:
        Shared UnmaskConfig instance.
    """
    global _config
    if _config is None:
        with _config_lock:
            if _config is None:
                _config = load_config()
    return _config


def reset_config() -> None:
    """Reset singleton configuration for testing."""
    global _config
    with _config_lock:
        _config = None


__all__ = [
    "CONFIG_PATH",
    "CONFIG_VERSION",
    "ChunkingConfig",
    "DatabaseConfig",
    "LLMConfig",
    "OrchestratorConfig",
    "RateLimitConfig",
    "ServerConfig",
    "UnmaskConfig",
    "get_config",
    "load_config",
    "reset_config",
    "save_config",
]
