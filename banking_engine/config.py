"""
Configuration Management Module

Provides centralized configuration using pydantic-settings for environment-based configuration.
"""

from decimal import Decimal
from typing import Optional

from pydantic_settings import BaseSettings, SettingsConfigDict


class EngineConfig(BaseSettings):
    """Banking engine configuration"""

    model_config = SettingsConfigDict(
        env_prefix="BANKING_ENGINE_",
        env_file=".env",
        case_sensitive=False,
        extra="ignore"
    )

    # Logging configuration
    log_level: str = "INFO"
    log_format: str = "json"  # json or text
    log_file: Optional[str] = None  # If None, logs to stderr

    # Identifier generation
    iban_seed: int = 1
    card_seed: int = 2
    iban_country_code: str = "RO"
    iban_bank_code: str = "POOB"
    iban_account_digits: int = 16
    card_number_digits: int = 16

    # Fee policy
    base_currency: str = "RON"  # Currency of the silver threshold and upgrade fees
    standard_surcharge_rate: Decimal = Decimal("0.002")
    silver_surcharge_rate: Decimal = Decimal("0.001")
    silver_surcharge_threshold: Decimal = Decimal("500")
    silver_upgrade_fee: Decimal = Decimal("100")
    silver_to_gold_upgrade_fee: Decimal = Decimal("250")
    gold_upgrade_fee: Decimal = Decimal("350")

    # Business rules
    minimum_withdrawal_age: int = 21
    card_freeze_margin: Decimal = Decimal("30")


# Global configuration instance
config = EngineConfig()


def get_config() -> EngineConfig:
    """Get global configuration instance"""
    return config


def reload_config() -> EngineConfig:
    """Reload configuration from environment"""
    global config
    config = EngineConfig()
    return config
