"""Configuration settings for Eye Portfolio."""

import os
from dataclasses import dataclass, field
from pathlib import Path
from typing import Optional

# NOTE: load_dotenv() is called in CLI main.py so library imports stay side-effect free


@dataclass
class SupabaseConfig:
    """Connection details for the hosted database."""

    url: str = field(default_factory=lambda: os.getenv("SUPABASE_URL", ""))
    service_role_key: str = field(
        default_factory=lambda: os.getenv("SUPABASE_SERVICE_ROLE_KEY", "")
    )
    timeout: float = 30.0

    @property
    def is_configured(self) -> bool:
        """Check if both the URL and the service credential are present."""
        return bool(self.url and self.service_role_key)


@dataclass
class EmailConfig:
    """Configuration for the transactional email API."""

    api_url: str = "https://api.resend.com/emails"
    api_key: str = field(default_factory=lambda: os.getenv("RESEND_API_KEY", ""))
    from_email: str = "noreply@eyeportfolio.com"
    timeout: float = 30.0


@dataclass
class MagicLinkConfig:
    """Configuration for single-use assessor links."""

    app_url: str = "https://eyeportfolio.com"
    expiry_hours: int = 24


@dataclass
class PortfolioConfig:
    """Configuration for the in-memory portfolio controller."""

    msf_respondent_slots: int = 11
    id_max_attempts: int = 10
    debug_navigation: bool = False
    trainee_name: str = "Trainee"


@dataclass
class Settings:
    """Main settings container."""

    supabase: SupabaseConfig = field(default_factory=SupabaseConfig)
    email: EmailConfig = field(default_factory=EmailConfig)
    magic_link: MagicLinkConfig = field(default_factory=MagicLinkConfig)
    portfolio: PortfolioConfig = field(default_factory=PortfolioConfig)

    # Local snapshot storage, used when no hosted backend is configured
    data_dir: Path = field(default_factory=lambda: Path("./portfolio"))

    # Logging
    log_level: str = "INFO"
    log_file: Optional[Path] = None

    @classmethod
    def from_env(cls) -> "Settings":
        """Create settings from environment variables."""
        settings = cls()

        if from_email := os.getenv("RESEND_FROM_EMAIL"):
            settings.email.from_email = from_email

        if app_url := os.getenv("APP_URL"):
            settings.magic_link.app_url = app_url.rstrip("/")

        if timeout := os.getenv("EMAIL_TIMEOUT"):
            settings.email.timeout = float(timeout)

        if timeout := os.getenv("SUPABASE_TIMEOUT"):
            settings.supabase.timeout = float(timeout)

        if os.getenv("EYE_PORTFOLIO_DEBUG_NAVIGATION", "").lower() in ("1", "true", "yes"):
            settings.portfolio.debug_navigation = True

        if trainee_name := os.getenv("EYE_PORTFOLIO_TRAINEE_NAME"):
            settings.portfolio.trainee_name = trainee_name

        if data_dir := os.getenv("EYE_PORTFOLIO_DATA_DIR"):
            settings.data_dir = Path(data_dir)

        if log_level := os.getenv("LOG_LEVEL"):
            settings.log_level = log_level

        if log_file := os.getenv("EYE_PORTFOLIO_LOG_FILE"):
            settings.log_file = Path(log_file)

        return settings


# Global settings instance
_settings: Optional[Settings] = None


def get_settings() -> Settings:
    """Get the global settings instance."""
    global _settings
    if _settings is None:
        _settings = Settings.from_env()
    return _settings


def configure(settings: Optional[Settings]) -> None:
    """Set the global settings instance (None resets to environment defaults)."""
    global _settings
    _settings = settings
