"""Configuration for Eye Portfolio."""

from .settings import (
    EmailConfig,
    MagicLinkConfig,
    PortfolioConfig,
    Settings,
    SupabaseConfig,
    configure,
    get_settings,
)

__all__ = [
    "EmailConfig",
    "MagicLinkConfig",
    "PortfolioConfig",
    "Settings",
    "SupabaseConfig",
    "configure",
    "get_settings",
]
