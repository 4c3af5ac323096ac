from typing import Any, Dict, Literal, Optional

from pydantic import SecretStr, field_validator
from pydantic_settings import BaseSettings, SettingsConfigDict
from scan_launcher.models import PollingConfig
from scan_launcher.scan_client import DEFAULT_ENDPOINT

# loguru's built-in levels
LogLevel = Literal["TRACE", "DEBUG", "INFO", "SUCCESS", "WARNING", "ERROR", "CRITICAL"]


class ScanSettings(BaseSettings):
    model_config = SettingsConfigDict(
        env_file=".env",
        env_file_encoding="utf-8",
        case_sensitive=True,
        extra="ignore",
    )

    GRAPHQL_ENDPOINT: str = DEFAULT_ENDPOINT
    API_KEY: Optional[SecretStr] = None
    MAX_POLL_ATTEMPTS: int = 100
    POLL_INTERVAL_MS: int = 30_000
    INITIALIZATION_TIMEOUT_MS: int = 300_000  # 5 minutes
    LOG_LEVEL: LogLevel = "INFO"

    @field_validator("LOG_LEVEL", mode="before")
    @classmethod
    def _upper_log_level(cls, value: Any) -> Any:
        return value.upper() if isinstance(value, str) else value

    @property
    def api_key(self) -> Optional[str]:
        return self.API_KEY.get_secret_value() if self.API_KEY else None

    def polling_values(self) -> Dict[str, Any]:
        """Polling fields in PollingConfig's units, not yet validated against each other"""
        return {
            "max_attempts": self.MAX_POLL_ATTEMPTS,
            "poll_interval": self.POLL_INTERVAL_MS / 1000,
            "initialization_timeout": self.INITIALIZATION_TIMEOUT_MS / 1000,
        }

    def polling_config(self) -> PollingConfig:
        return PollingConfig(**self.polling_values())
