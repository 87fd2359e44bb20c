"""Application configuration using pydantic-settings.

Holds the device polling policy and the import paths of the external
collaborators (transport factory and per-chain device app factories).
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
    debug: bool = Field(default=False, description="Enable debug mode")

    # ======================
    # Device polling policy
    # ======================
    retry_max_attempts: int = Field(
        default=1200, ge=1, description="Attempts before a busy device operation times out"
    )
    retry_interval: float = Field(
        default=0.1, ge=0, description="Pause between busy retries (seconds)"
    )
    init_max_attempts: int = Field(
        default=1200, ge=1, description="Polls while waiting for another caller to open the device"
    )
    init_poll_interval: float = Field(
        default=0.1, ge=0, description="Interval of the initialization wait (seconds)"
    )

    # ======================
    # Derivation paths
    # ======================
    eth_default_path: str = Field(
        default="m/44'/60'/0'/0/0", description="Default Ethereum derivation path"
    )
    sol_default_path: str = Field(
        default="m/44'/501'/0'/0'", description="Default Solana derivation path"
    )

    # ======================
    # External collaborators ("package.module:attribute")
    # ======================
    transport_factory: str = Field(
        default="", description="Async callable opening the Ledger transport"
    )
    eth_app_factory: str = Field(
        default="", description="Callable building the Ethereum device API from a transport"
    )
    sol_app_factory: str = Field(
        default="", description="Callable building the Solana device API from a transport"
    )

    @property
    def is_production(self) -> bool:
        """Check if running in production environment."""
        return self.environment.lower() == "production"

    @property
    def init_timeout(self) -> float:
        """Total time a caller waits for another caller's initialization."""
        return self.init_max_attempts * self.init_poll_interval

    @property
    def retry_timeout(self) -> float:
        """Approximate time a busy operation is retried before giving up."""
        return self.retry_max_attempts * self.retry_interval

    def get_app_factory(self, chain: str) -> str:
        """Get the device app factory import path for a chain."""
        factory_map = {
            "ETH": self.eth_app_factory,
            "SOL": self.sol_app_factory,
        }
        return factory_map.get(chain.upper(), "")

    def get_default_path(self, chain: str) -> str:
        """Get the default derivation path for a chain."""
        path_map = {
            "ETH": self.eth_default_path,
            "SOL": self.sol_default_path,
        }
        return path_map.get(chain.upper(), "")

    def get_safe_dict(self) -> dict:
        """Return settings dict for diagnostics."""
        return {
            "environment": self.environment,
            "debug": self.debug,
            "retry": {
                "max_attempts": self.retry_max_attempts,
                "interval": self.retry_interval,
                "timeout": self.retry_timeout,
            },
            "init": {
                "max_attempts": self.init_max_attempts,
                "interval": self.init_poll_interval,
                "timeout": self.init_timeout,
            },
            "paths": {
                "ETH": self.eth_default_path,
                "SOL": self.sol_default_path,
            },
            "collaborators": {
                "transport": self.transport_factory or "(not set)",
                "ETH": self.eth_app_factory or "(not set)",
                "SOL": self.sol_app_factory or "(not set)",
            },
        }


@lru_cache
def get_settings() -> Settings:
    """Get cached settings instance."""
    return Settings()
