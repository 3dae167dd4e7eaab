from pathlib import Path
from dotenv import dotenv_values
from pydantic import Field
from pydantic_settings import BaseSettings

import os

from .interaction import InteractionSettings

# Explicitly load .env for local/dev environments only if values are missing from the environment
BASE_DIR = Path(__file__).resolve().parent.parent.parent
env_file = BASE_DIR / ".env"

if env_file.exists():
    file_env = dotenv_values(env_file)
    missing_keys = {k: v for k, v in file_env.items() if k not in os.environ and v is not None}
    for k, v in missing_keys.items():
        os.environ[k] = v


class Settings(BaseSettings):
    """Application settings pulled from environment variables."""

    # Logging Configuration
    log_level: str = Field(default="INFO", description="Logging level")
    log_format: str = Field(default="plain", description="Logging format (plain or json)")

    # Persistence Configuration
    state_file: str = Field(
        default="./punchmap_state.json", description="JSON file holding the persisted inspection status"
    )

    # Interaction Configuration
    interaction: InteractionSettings = Field(default_factory=InteractionSettings)

    class Config:
        env_prefix = "PUNCHMAP_"
        env_nested_delimiter = "__"
        env_file = ".env"
        env_file_encoding = "utf-8"
        extra = "ignore"


# Instantiate singleton settings object
settings = Settings()


def get_settings() -> Settings:
    """Get the current application settings."""
    return settings


def get_interaction_settings() -> InteractionSettings:
    """Get the interaction block of the current settings."""
    return settings.interaction
