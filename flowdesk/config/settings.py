"""
Configuration management for FlowDesk.
"""

import json
from decimal import Decimal
from typing import Dict, Optional

from dotenv import load_dotenv
from pydantic import Field, field_validator
from pydantic_settings import BaseSettings, SettingsConfigDict


class FlowDeskConfig(BaseSettings):
    """Configuration settings for the back office."""

    # Database Configuration
    database_url: str = Field(default="sqlite:///flowdesk.db", alias="DATABASE_URL")
    database_echo: bool = Field(default=False, alias="DATABASE_ECHO")

    # Billing Configuration
    default_hourly_rate: Decimal = Field(
        default=Decimal("85.00"), gt=0, alias="DEFAULT_HOURLY_RATE"
    )
    project_hourly_rates: Dict[int, Decimal] = Field(
        default_factory=dict, alias="PROJECT_HOURLY_RATES"
    )
    invoice_due_days: int = Field(default=30, ge=0, alias="INVOICE_DUE_DAYS")
    invoice_number_prefix: str = Field(default="INV", alias="INVOICE_NUMBER_PREFIX")
    billing_failure_policy: str = Field(default="skip", alias="BILLING_FAILURE_POLICY")
    minimum_invoice_amount: Optional[Decimal] = Field(
        default=None, ge=0, alias="MINIMUM_INVOICE_AMOUNT"
    )

    # Alert Configuration
    alert_upcoming_days: int = Field(default=7, ge=0, alias="ALERT_UPCOMING_DAYS")
    alert_inactivity_days: int = Field(default=14, ge=1, alias="ALERT_INACTIVITY_DAYS")
    alert_contract_expiry_days: int = Field(
        default=30, ge=0, alias="ALERT_CONTRACT_EXPIRY_DAYS"
    )
    alert_refresh_seconds: float = Field(default=300.0, gt=0, alias="ALERT_REFRESH_SECONDS")

    # Application Configuration
    environment: str = Field(default="development", alias="ENVIRONMENT")
    debug: bool = Field(default=False, alias="DEBUG")
    log_level: str = Field(default="INFO", alias="LOG_LEVEL")
    log_format: str = Field(default="standard", alias="LOG_FORMAT")
    log_file: Optional[str] = Field(default=None, alias="LOG_FILE")
    log_console: bool = Field(default=True, alias="LOG_CONSOLE")
    log_max_bytes: int = Field(default=10 * 1024 * 1024, gt=0, alias="LOG_MAX_BYTES")
    log_backup_count: int = Field(default=5, ge=0, alias="LOG_BACKUP_COUNT")

    model_config = SettingsConfigDict(
        env_file=".env",
        env_file_encoding="utf-8",
        case_sensitive=False,
        validate_default=True,
        populate_by_name=True,
    )

    @field_validator("project_hourly_rates", mode="before")
    @classmethod
    def parse_project_rates(cls, v):
        """Accept a JSON object string such as '{"1": "120.00"}'."""
        if v is None or v == "":
            return {}
        if isinstance(v, str):
            try:
                v = json.loads(v)
            except json.JSONDecodeError as e:
                raise ValueError(f"PROJECT_HOURLY_RATES must be a JSON object: {e}")
        if not isinstance(v, dict):
            raise ValueError("PROJECT_HOURLY_RATES must map project ids to rates")
        return v

    @field_validator("project_hourly_rates")
    @classmethod
    def validate_project_rates(cls, v):
        """Ensure every per-project rate is positive."""
        for project_id, rate in v.items():
            if rate <= 0:
                raise ValueError(
                    f"Hourly rate for project {project_id} must be positive, got {rate}"
                )
        return v

    @field_validator("invoice_number_prefix")
    @classmethod
    def validate_prefix(cls, v):
        """Ensure the invoice prefix is a non-empty token."""
        v = v.strip()
        if not v or any(ch.isspace() for ch in v):
            raise ValueError("Invoice number prefix must be a non-empty token")
        return v

    @field_validator("billing_failure_policy")
    @classmethod
    def validate_failure_policy(cls, v):
        """Ensure failure policy is valid."""
        valid_policies = ["skip", "abort"]
        if v.lower() not in valid_policies:
            raise ValueError(f"Billing failure policy must be one of: {valid_policies}")
        return v.lower()

    @field_validator("log_level")
    @classmethod
    def validate_log_level(cls, v):
        """Ensure log level is valid."""
        valid_levels = ["DEBUG", "INFO", "WARNING", "ERROR", "CRITICAL"]
        if v.upper() not in valid_levels:
            raise ValueError(f"Log level must be one of: {valid_levels}")
        return v.upper()

    @field_validator("log_format")
    @classmethod
    def validate_log_format(cls, v):
        """Ensure log format is valid."""
        valid_formats = ["standard", "json"]
        if v.lower() not in valid_formats:
            raise ValueError(f"Log format must be one of: {valid_formats}")
        return v.lower()

    @field_validator("environment")
    @classmethod
    def validate_environment(cls, v):
        """Ensure environment is valid."""
        valid_envs = ["development", "testing", "production"]
        if v.lower() not in valid_envs:
            raise ValueError(f"Environment must be one of: {valid_envs}")
        return v.lower()


def load_config(env_file: Optional[str] = None) -> FlowDeskConfig:
    """Load configuration from environment variables and .env file."""
    if env_file:
        load_dotenv(env_file)
    else:
        load_dotenv()

    return FlowDeskConfig()


# Global configuration instance
_config: Optional[FlowDeskConfig] = None


def get_config() -> FlowDeskConfig:
    """Get the global configuration instance."""
    global _config
    if _config is None:
        _config = load_config()
    return _config


def reload_config(env_file: Optional[str] = None) -> FlowDeskConfig:
    """Reload configuration (useful for testing)."""
    global _config
    _config = load_config(env_file)
    return _config
