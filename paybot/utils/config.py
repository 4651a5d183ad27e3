"""Configuration module for the payments chat bot."""

import os
from enum import Enum
from pydantic import Field
from pydantic_settings import BaseSettings
from dotenv import load_dotenv

# Load environment variables from .env file
load_dotenv()


class AmbiguousResponsePolicy(str, Enum):
    """What to do when an acknowledgement response matches no known shape."""

    ASSUME_SUCCESS = "assume_success"
    FLAG_UNKNOWN = "flag_unknown"


class OutOfStateActionPolicy(str, Enum):
    """What to do when a button press has no handler in the chat's current state."""

    IGNORE = "ignore"
    REJECT = "reject"
    CANCEL = "cancel"


class Settings(BaseSettings):
    """Application settings loaded from environment variables."""

    # Payments API Configuration
    api_base_url: str = Field(default="https://income-api.copperx.io/api", alias="API_BASE_URL")
    api_timeout_seconds: float = Field(default=15.0, alias="API_TIMEOUT_SECONDS")
    default_asset: str = Field(default="USDC", alias="DEFAULT_ASSET")

    # Application Configuration
    app_name: str = Field(default="Copperx Payment Bot", alias="APP_NAME")
    app_version: str = Field(default="1.0.0", alias="APP_VERSION")
    debug: bool = Field(default=False, alias="DEBUG")
    log_level: str = Field(default="INFO", alias="LOG_LEVEL")

    # FastAPI Configuration
    api_host: str = Field(default="127.0.0.1", alias="API_HOST")
    api_port: int = Field(default=8000, alias="API_PORT")
    api_reload: bool = Field(default=False, alias="API_RELOAD")

    # Telegram Bot (chat interface)
    telegram_bot_token: str = Field(default="", alias="TELEGRAM_BOT_TOKEN")
    telegram_webhook_secret: str = Field(default="", alias="TELEGRAM_WEBHOOK_SECRET")
    telegram_use_polling: bool = Field(default=True, alias="TELEGRAM_USE_POLLING")
    webhook_url: str = Field(default="", alias="WEBHOOK_URL")

    # Deposit notifications
    pusher_key: str = Field(default="", alias="PUSHER_KEY")
    pusher_cluster: str = Field(default="ap1", alias="PUSHER_CLUSTER")
    notifications_secret: str = Field(default="", alias="NOTIFICATIONS_SECRET")

    # Conversation behaviour
    min_wallet_address_length: int = Field(default=20, alias="MIN_WALLET_ADDRESS_LENGTH")
    ambiguous_response_policy: AmbiguousResponsePolicy = Field(
        default=AmbiguousResponsePolicy.ASSUME_SUCCESS,
        alias="AMBIGUOUS_RESPONSE_POLICY"
    )
    out_of_state_action_policy: OutOfStateActionPolicy = Field(
        default=OutOfStateActionPolicy.REJECT,
        alias="OUT_OF_STATE_ACTION_POLICY"
    )
    support_url: str = Field(default="https://t.me/copperxcommunity/2183", alias="SUPPORT_URL")

    # Logging
    log_file: str = Field(default="logs/app.log", alias="LOG_FILE")
    log_rotation: str = Field(default="10 MB", alias="LOG_ROTATION")
    log_retention: str = Field(default="30 days", alias="LOG_RETENTION")

    model_config = {
        "env_file": ".env",
        "case_sensitive": False,
        "extra": "ignore",
        "populate_by_name": True,
    }

    @property
    def telegram_enabled(self) -> bool:
        return bool(self.telegram_bot_token.strip())


# Create global settings instance
settings = Settings()

# Ensure logs directory exists
try:
    log_dir = os.path.dirname(settings.log_file) if settings.log_file else ""
    if log_dir:
        os.makedirs(log_dir, exist_ok=True)
except OSError as e:
    print(f"Warning: Could not create logs directory: {e}")
