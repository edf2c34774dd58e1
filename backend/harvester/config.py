"""Application configuration via Pydantic Settings."""

from typing import Optional

from pydantic import model_validator
from pydantic_settings import BaseSettings, SettingsConfigDict


class Settings(BaseSettings):
    """Global harvester settings loaded from environment variables."""

    model_config = SettingsConfigDict(
        env_file=".env",
        env_file_encoding="utf-8",
        case_sensitive=True,
    )

    # App
    ENVIRONMENT: str = "development"
    DEBUG: bool = True
    LOG_LEVEL: str = "INFO"

    # HTTP
    REQUEST_TIMEOUT_SECONDS: float = 20.0
    PROBE_TIMEOUT_SECONDS: float = 8.0
    USER_AGENT: str = "StoreHarvest/1.0 (+https://github.com/storeharvest/storeharvest)"
    HTTP_MAX_RETRIES: int = 3
    HTTP_RETRY_WAIT_MAX_SECONDS: float = 10.0

    # Pagination
    PAGE_SIZE: int = 100
    SHOPIFY_PAGE_SIZE: int = 250
    MAX_PAGES: int = 500
    POLITENESS_DELAY_MS: int = 750

    # Prices: whole numbers above this are treated as minor units (cents)
    MINOR_UNIT_THRESHOLD: int = 1000

    # Concurrency across origins (each harvest is still sequential)
    MAX_CONCURRENT_HARVESTS: int = 4

    # Credentials (optional)
    API_TOKEN: str = ""  # sent as "Authorization: Bearer <token>"
    WC_CONSUMER_KEY: str = ""
    WC_CONSUMER_SECRET: str = ""

    # Export
    RESULTS_DIR: str = "results"

    @model_validator(mode="after")
    def clamp_page_sizes(self) -> "Settings":
        """WooCommerce caps per_page at 100 and Shopify caps limit at 250."""
        self.PAGE_SIZE = max(1, min(self.PAGE_SIZE, 100))
        self.SHOPIFY_PAGE_SIZE = max(1, min(self.SHOPIFY_PAGE_SIZE, 250))
        self.HTTP_MAX_RETRIES = max(1, self.HTTP_MAX_RETRIES)
        self.POLITENESS_DELAY_MS = max(0, self.POLITENESS_DELAY_MS)
        return self

    def get_bearer_token(self) -> Optional[str]:
        """Return the configured bearer token, or None when unset."""
        token = self.API_TOKEN.strip()
        return token or None

    def get_wc_credentials(self) -> Optional[tuple[str, str]]:
        """Return the WooCommerce REST consumer key/secret pair, if both are set."""
        if self.WC_CONSUMER_KEY and self.WC_CONSUMER_SECRET:
            return self.WC_CONSUMER_KEY, self.WC_CONSUMER_SECRET
        return None


settings = Settings()
