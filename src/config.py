"""Application settings loaded from environment variables."""

import os
from pathlib import Path

from pydantic import Field
from pydantic_settings import BaseSettings, SettingsConfigDict


def _env_file() -> str | None:
    if os.getenv("PYTEST_CURRENT_TEST"):
        return None
    return ".env"


class Settings(BaseSettings):
    """Router configuration. All values come from environment variables."""

    # HTTP server
    webhook_host: str = Field(default="0.0.0.0")
    webhook_port: int = Field(default=8080)

    # Push API (disabled while the token is empty)
    push_security_token: str = Field(default="")
    push_path: str = Field(default="/BotPushBack")

    # History API (disabled while the token is empty)
    history_token: str = Field(default="")
    history_path: str = Field(default="/BotHistory")

    # Persistence
    persistence_enabled: bool = Field(default=True)
    database_path: Path = Field(default=Path("data/messages.db"))

    # Generic webhook channel
    webhook_channel_name: str = Field(default="webhook")
    webhook_channel_secret: str = Field(default="")
    webhook_channel_outbound_url: str = Field(default="")

    # Logging
    log_level: str = Field(default="INFO")

    model_config = SettingsConfigDict(env_file=_env_file(), env_file_encoding="utf-8")

    @classmethod
    def settings_customise_sources(
        cls,
        settings_cls: type[BaseSettings],
        init_settings,
        env_settings,
        dotenv_settings,
        file_secret_settings,
    ):
        if os.getenv("PYTEST_CURRENT_TEST"):
            return (init_settings,)
        return (init_settings, env_settings, dotenv_settings, file_secret_settings)

    @property
    def push_enabled(self) -> bool:
        return bool(self.push_security_token)

    @property
    def history_enabled(self) -> bool:
        return bool(self.history_token)


settings = Settings()
