"""Centralized client configuration.

All settings are read from environment variables (or a .env.match file).
ROOM_ID is required; the service fails at startup with a clear error if
it is not set. The room creator plays white, the joiner black.
"""

from typing import Literal

from pydantic_settings import BaseSettings, SettingsConfigDict


class Settings(BaseSettings):
    model_config = SettingsConfigDict(
        env_file=".env.match", env_file_encoding="utf-8",
    )

    # Match
    room_id: str
    seat: Literal["white", "black"] = "white"
    username: str = "Anonymous"

    # Moves chosen by clicking promote to this piece (no underpromotion UI)
    promotion_piece: Literal["q", "r", "b", "n"] = "q"

    # Transport
    channel_timeout: float = 30.0

    log_level: str = "INFO"

    @property
    def is_creator(self) -> bool:
        """The creator of a room always takes the white seat."""
        return self.seat == "white"
