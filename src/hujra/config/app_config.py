"""Application configuration loader.

Loads centralized configuration from data/config/app_config_v1.yaml,
falling back to built-in defaults when the file is absent.

Usage:
    from hujra.config.app_config import load_app_config, get_provider_config

    config = load_app_config()
    provider = get_provider_config("openai")
"""

from __future__ import annotations

import os
from dataclasses import dataclass, field
from pathlib import Path
from typing import Any

import structlog
import yaml

logger = structlog.get_logger(__name__)

# Config file path (relative to project root)
CONFIG_FILE = Path("data/config/app_config_v1.yaml")

# Environment override for the database location
DB_PATH_ENV = "HUJRA_DB_PATH"


@dataclass
class ProviderConfig:
    """Endpoint and default model of one OpenAI-compatible provider."""

    base_url: str | None
    default_model: str
    api_key_env: str | None = None

    def get_api_key(self) -> str | None:
        """API key read from the configured environment variable, if any."""
        if self.api_key_env:
            return os.environ.get(self.api_key_env)
        return None


@dataclass
class StorageConfig:
    """Where the database and backups live."""

    db_path: str = "data/hujra.db"
    backup_dir: str = "data/backups"


@dataclass
class LedgerConfig:
    """Behaviour of visit recording."""

    strict_numbers: bool = False
    default_finance_source: str = "visit-time contribution"


@dataclass
class AnalysisConfig:
    """Settings for the AI progress summary."""

    provider: str = "openai"
    model: str | None = None
    temperature: float = 0.4
    max_tokens: int = 800
    timeout: int = 60


@dataclass
class AppConfig:
    """Everything read from app_config_v1.yaml."""

    providers: dict[str, ProviderConfig] = field(default_factory=dict)
    storage: StorageConfig = field(default_factory=StorageConfig)
    ledger: LedgerConfig = field(default_factory=LedgerConfig)
    analysis: AnalysisConfig = field(default_factory=AnalysisConfig)

    @property
    def db_path(self) -> Path:
        """Database path, honouring the HUJRA_DB_PATH override."""
        return Path(os.environ.get(DB_PATH_ENV) or self.storage.db_path)

    @property
    def backup_dir(self) -> Path:
        return Path(self.storage.backup_dir)


# Module-level cache
_cached_config: AppConfig | None = None


def _get_defaults() -> dict[str, Any]:
    """Built-in settings used when no YAML file exists."""
    return {
        "providers": {
            "lmstudio": {
                "base_url": "http://localhost:1234/v1",
                "default_model": "llama-3.2-3b-instruct",
                "api_key_env": None,
            },
            "openai": {
                "base_url": "https://api.openai.com/v1",
                "default_model": "gpt-4o-mini",
                "api_key_env": "OPENAI_API_KEY",
            },
        },
        "storage": {
            "db_path": "data/hujra.db",
            "backup_dir": "data/backups",
        },
        "ledger": {
            "strict_numbers": False,
            "default_finance_source": "visit-time contribution",
        },
        "analysis": {
            "provider": "openai",
            "model": None,
            "temperature": 0.4,
            "max_tokens": 800,
            "timeout": 60,
        },
    }


def _parse_config(data: dict[str, Any]) -> AppConfig:
    """Build an AppConfig from YAML data, filling gaps from the defaults."""
    defaults = _get_defaults()

    providers = {}
    for name, pconfig in (data.get("providers") or defaults["providers"]).items():
        providers[name] = ProviderConfig(
            base_url=pconfig.get("base_url"),
            default_model=pconfig.get("default_model", "default"),
            api_key_env=pconfig.get("api_key_env"),
        )

    storage_data = {**defaults["storage"], **(data.get("storage") or {})}
    storage = StorageConfig(
        db_path=str(storage_data["db_path"]),
        backup_dir=str(storage_data["backup_dir"]),
    )

    ledger_data = {**defaults["ledger"], **(data.get("ledger") or {})}
    ledger = LedgerConfig(
        strict_numbers=bool(ledger_data["strict_numbers"]),
        default_finance_source=str(ledger_data["default_finance_source"]),
    )

    analysis_data = {**defaults["analysis"], **(data.get("analysis") or {})}
    analysis = AnalysisConfig(
        provider=analysis_data["provider"],
        model=analysis_data["model"],
        temperature=float(analysis_data["temperature"]),
        max_tokens=int(analysis_data["max_tokens"]),
        timeout=int(analysis_data["timeout"]),
    )

    return AppConfig(
        providers=providers, storage=storage, ledger=ledger, analysis=analysis
    )


def load_app_config(
    force_reload: bool = False, config_file: Path | None = None
) -> AppConfig:
    """Load application config, falling back to defaults.

    Args:
        force_reload: If True, ignore cached config and reload from file.
        config_file: Alternative YAML path (default: CONFIG_FILE)

    Returns:
        AppConfig object with all settings.
    """
    global _cached_config

    if _cached_config is not None and not force_reload and config_file is None:
        return _cached_config

    path = config_file or CONFIG_FILE
    data: dict[str, Any]

    if path.exists():
        logger.debug("loading_app_config", source=str(path))
        data = yaml.safe_load(path.read_text(encoding="utf-8")) or {}
    else:
        logger.info("using_default_config")
        data = _get_defaults()

    config = _parse_config(data)
    if config_file is None:
        _cached_config = config
    return config


def get_provider_config(provider: str) -> ProviderConfig | None:
    """Look up one provider by name (None if not configured)."""
    config = load_app_config()
    return config.providers.get(provider)


def clear_config_cache() -> None:
    """Forget the cached config so the next load re-reads the file."""
    global _cached_config
    _cached_config = None
