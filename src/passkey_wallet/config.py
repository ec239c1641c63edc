"""Application configuration using pydantic-settings.

Holds the network, relying-party and storage settings together with the
per-operation timeout budgets used by the session controller.
"""

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
    # Environment
    # ======================
    environment: str = Field(default="development", description="Runtime environment")
    debug: bool = Field(default=True, description="Enable debug logging")

    # ======================
    # Network
    # ======================
    rpc_url: str = Field(
        default="https://soroban-testnet.stellar.org", description="Ledger RPC URL"
    )
    native_token_contract: str = Field(
        default="CDLZFC3SYJYDZT7K67VZ75HPJVIEUVNIXF47ZG2FB2RMQQVU2HHGCYSC",
        description="Native token contract used for balances and transfers",
    )

    # ======================
    # Relying party (passkeys)
    # ======================
    rp_id: str = Field(default="soneso.com", description="WebAuthn relying party ID")
    rp_name: str = Field(default="Smart Account Demo", description="WebAuthn relying party name")

    # ======================
    # Storage
    # ======================
    storage_prefix: str = Field(
        default="smart-account-demo", description="Namespace prefix for persisted keys"
    )
    database_url: str = Field(
        default="sqlite+aiosqlite:///./data/wallet.db",
        description="Preferences database connection URL",
    )

    # ======================
    # Timeout budgets (seconds)
    # ======================
    restore_timeout: float = Field(default=10.0, description="Silent session restore")
    reauth_timeout: float = Field(default=30.0, description="Interactive re-authentication")
    create_timeout: float = Field(default=90.0, description="Wallet creation and deployment")
    connect_timeout: float = Field(default=45.0, description="Interactive wallet connect")
    transfer_timeout: float = Field(default=60.0, description="Transfer submission")
    disconnect_timeout: float = Field(default=10.0, description="Wallet disconnect")
    balance_timeout: float = Field(default=15.0, description="Balance query")
    storage_timeout: float = Field(default=8.0, description="Single persistent storage call")
    passkey_timeout: float = Field(default=60.0, description="Single passkey ceremony")

    # ======================
    # Session
    # ======================
    session_ttl_seconds: int = Field(
        default=7 * 24 * 60 * 60, description="Lifetime of a persisted session record"
    )
    max_log_entries: int = Field(default=14, description="Activity log entries kept")

    @property
    def is_production(self) -> bool:
        """Check if running in production environment."""
        return self.environment.lower() == "production"

    def timeout_for(self, operation: str) -> float:
        """Get the timeout budget for an operation label."""
        timeouts = {
            "restore": self.restore_timeout,
            "reauth": self.reauth_timeout,
            "create": self.create_timeout,
            "connect": self.connect_timeout,
            "transfer": self.transfer_timeout,
            "disconnect": self.disconnect_timeout,
            "balance": self.balance_timeout,
        }
        key = getattr(operation, "value", operation)
        if key not in timeouts:
            raise KeyError(f"No timeout budget for operation: {key}")
        return timeouts[key]

    def get_safe_dict(self) -> dict:
        """Return settings dict with the database URL redacted."""
        return {
            "environment": self.environment,
            "debug": self.debug,
            "network": {
                "rpc_url": self.rpc_url,
                "native_token": self.native_token_contract,
            },
            "rp": {"id": self.rp_id, "name": self.rp_name},
            "storage": {
                "prefix": self.storage_prefix,
                "database_url": self._redact_url(self.database_url),
            },
            "timeouts": {
                "restore": self.restore_timeout,
                "reauth": self.reauth_timeout,
                "create": self.create_timeout,
                "connect": self.connect_timeout,
                "transfer": self.transfer_timeout,
                "disconnect": self.disconnect_timeout,
                "balance": self.balance_timeout,
                "storage": self.storage_timeout,
                "passkey": self.passkey_timeout,
            },
        }

    @staticmethod
    def _redact_url(url: str) -> str:
        """Redact credentials in a database URL."""
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
