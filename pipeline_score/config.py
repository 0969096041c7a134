"""Environment-driven settings and signing-secret resolution."""

import logging
import os
import secrets
from dataclasses import dataclass

from dotenv import load_dotenv

logger = logging.getLogger(__name__)

ENVIRONMENTS = ("development", "production")

DEFAULT_KIT_FORM_ID = "8480887"
DEFAULT_SEO_TIMEOUT = 20.0


class ConfigurationError(RuntimeError):
    """Raised at startup when required configuration is missing."""


@dataclass
class Settings:
    dataforseo_login: str = ""
    dataforseo_password: str = ""
    results_token_secret: str = ""
    close_api_key: str = ""
    kit_api_key: str = ""
    kit_form_id: str = DEFAULT_KIT_FORM_ID
    environment: str = "development"
    seo_lookup_timeout: float = DEFAULT_SEO_TIMEOUT
    public_base_url: str = ""

    @property
    def is_production(self) -> bool:
        return self.environment == "production"

    @property
    def dataforseo_configured(self) -> bool:
        return bool(self.dataforseo_login and self.dataforseo_password)

    @classmethod
    def from_env(cls) -> "Settings":
        load_dotenv()
        environment = os.getenv("PIPELINE_ENV", "development").strip().lower()
        if environment not in ENVIRONMENTS:
            raise ConfigurationError(
                f"PIPELINE_ENV must be one of {', '.join(ENVIRONMENTS)}, got {environment!r}"
            )
        timeout = os.getenv("SEO_LOOKUP_TIMEOUT", "")
        try:
            seo_timeout = float(timeout) if timeout else DEFAULT_SEO_TIMEOUT
        except ValueError:
            raise ConfigurationError(f"SEO_LOOKUP_TIMEOUT must be a number, got {timeout!r}")
        return cls(
            dataforseo_login=os.getenv("DATAFORSEO_LOGIN", "").strip(),
            dataforseo_password=os.getenv("DATAFORSEO_PASSWORD", "").strip(),
            results_token_secret=os.getenv("RESULTS_TOKEN_SECRET", "").strip(),
            close_api_key=os.getenv("CLOSE_API_KEY", "").strip(),
            kit_api_key=os.getenv("KIT_API_KEY", "").strip(),
            kit_form_id=os.getenv("KIT_FORM_ID", DEFAULT_KIT_FORM_ID).strip(),
            environment=environment,
            seo_lookup_timeout=seo_timeout,
            public_base_url=os.getenv("PUBLIC_BASE_URL", "").rstrip("/"),
        )


_dev_secret: str | None = None


def _ephemeral_secret() -> str:
    """
    Process-local secret for development.

    Generated once and reused for the lifetime of the process. Tokens signed
    with it will not verify on any other process or instance, so it is never
    used in production.
    """
    global _dev_secret
    if _dev_secret is None:
        _dev_secret = "dev-secret-" + secrets.token_hex(16)
        logger.warning(
            "RESULTS_TOKEN_SECRET not set; using an ephemeral development secret. "
            "Tokens will not verify across processes or instances."
        )
    return _dev_secret


def resolve_signing_secret(settings: Settings) -> str:
    """
    Return the secret used to sign result tokens.

    Raises:
        ConfigurationError: in production when no secret is configured.
    """
    if settings.results_token_secret:
        return settings.results_token_secret
    if settings.is_production:
        raise ConfigurationError("RESULTS_TOKEN_SECRET must be set when PIPELINE_ENV=production.")
    return _ephemeral_secret()


_settings: Settings | None = None


def get_settings() -> Settings:
    global _settings
    if _settings is None:
        _settings = Settings.from_env()
    return _settings


def reset_settings() -> None:
    """Drop cached settings (tests change the environment between cases)."""
    global _settings
    _settings = None
