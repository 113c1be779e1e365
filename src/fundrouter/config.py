"""Application configuration using pydantic-settings."""

from functools import lru_cache

from pydantic import Field
from pydantic_settings import BaseSettings, SettingsConfigDict


class Settings(BaseSettings):
    """Application settings loaded from environment variables."""

    model_config = SettingsConfigDict(
        env_file=".env",
        env_file_encoding="utf-8",
        extra="ignore",
    )

    # ======================
    # Database
    # ======================
    database_url: str = Field(
        default="sqlite+aiosqlite:///./data/fundrouter.db",
        description="Database connection URL",
    )

    # ======================
    # API
    # ======================
    api_host: str = Field(default="0.0.0.0", description="API server host")
    api_port: int = Field(default=8000, description="API server port")

    # ======================
    # Environment
    # ======================
    environment: str = Field(default="development", description="Runtime environment")
    debug: bool = Field(default=True, description="Enable debug mode")
    dry_run: bool = Field(
        default=True, description="Use in-memory token bank and simulated gateway"
    )

    # ======================
    # Access control
    # ======================
    admin_token: str = Field(default="", description="Admin API token for protected endpoints")
    operator_ids: str = Field(
        default="", description="Comma-separated identities allowed to act for any beneficiary"
    )

    # ======================
    # Assets
    # ======================
    custody_account: str = Field(
        default="fundrouter:custody", description="Account holding deposited funds"
    )
    settlement_asset: str = Field(default="USDC", description="Stable settlement currency")
    gas_asset: str = Field(default="WETH", description="Wrapped gas currency bought on deposit")
    native_asset: str = Field(default="ETH", description="Native currency delivered to destinations")

    # ======================
    # Deposit parameters
    # ======================
    gas_subsidy: int = Field(
        default=1_000_000_000_000_000,
        gt=0,
        description="Gas currency (base units) delivered per deposit",
    )
    default_deadline_seconds: int = Field(
        default=300, description="Deadline offset used by the API when none is supplied"
    )

    # ======================
    # Notifications
    # ======================
    event_webhook_url: str = Field(
        default="", description="URL receiving committed deposit and donation events (empty = off)"
    )
    event_webhook_timeout: float = Field(default=10.0, description="Webhook request timeout in seconds")

    # ======================
    # Concurrency
    # ======================
    operation_lock_timeout: float = Field(
        default=30.0, description="Seconds to wait for an in-flight operation to finish"
    )

    @property
    def operators(self) -> set[str]:
        """Parse operator identities into a set."""
        if not self.operator_ids:
            return set()
        return {op.strip() for op in self.operator_ids.split(",") if op.strip()}

    @property
    def is_production(self) -> bool:
        """Check if running in production environment."""
        return self.environment.lower() == "production"

    def get_safe_dict(self) -> dict:
        """Return settings dict with secrets redacted."""
        return {
            "environment": self.environment,
            "debug": self.debug,
            "dry_run": self.dry_run,
            "api_host": self.api_host,
            "api_port": self.api_port,
            "database_url": self._redact_url(self.database_url),
            "admin_token": "***" if self.admin_token else "(not set)",
            "operators": len(self.operators),
            "assets": {
                "settlement": self.settlement_asset,
                "gas": self.gas_asset,
                "native": self.native_asset,
            },
            "gas_subsidy_default": str(self.gas_subsidy),
            "event_webhook": bool(self.event_webhook_url),
        }

    @staticmethod
    def _redact_url(url: str) -> str:
        """Redact sensitive parts of database URL."""
        if "://" in url and "@" in url:
            proto, rest = url.split("://", 1)
            if "@" in rest:
                creds, host = rest.rsplit("@", 1)
                if ":" in creds:
                    user, _ = creds.split(":", 1)
                    return f"{proto}://{user}:***@{host}"
        return url


@lru_cache
def get_settings() -> Settings:
    """Get cached settings instance."""
    return Settings()
