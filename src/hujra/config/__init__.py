"""Configuration package for the hujra ledger."""

from hujra.config.app_config import (
    AnalysisConfig,
    AppConfig,
    LedgerConfig,
    ProviderConfig,
    StorageConfig,
    clear_config_cache,
    get_provider_config,
    load_app_config,
)

__all__ = [
    "AnalysisConfig",
    "AppConfig",
    "LedgerConfig",
    "ProviderConfig",
    "StorageConfig",
    "clear_config_cache",
    "get_provider_config",
    "load_app_config",
]
