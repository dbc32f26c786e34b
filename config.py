from pydantic import model_validator
from pydantic_settings import BaseSettings, SettingsConfigDict
from functools import lru_cache
from typing import List


class Settings(BaseSettings):
    model_config = SettingsConfigDict(env_file=".env")

    host: str = "0.0.0.0"
    port: int = 4000
    cors_origins: List[str] = ["*"]
    log_level: str = "INFO"

    # Poll rules
    min_poll_songs: int = 10
    poll_size: int = 10
    quorum_threshold: int = 3
    detect_ties: bool = True
    one_vote_per_user: bool = False

    # Roster / catalog defaults
    default_user_name: str = "Guest"
    seed_demo_catalog: bool = True

    # Frames queued per connection before a slow client is dropped
    outbox_size: int = 256

    @model_validator(mode="after")
    def poll_fits_catalog(self):
        # A catalog that passes the size check must always fill the poll
        if not 1 <= self.poll_size <= self.min_poll_songs:
            raise ValueError(
                f"poll_size must be between 1 and min_poll_songs ({self.min_poll_songs}), "
                f"got {self.poll_size}"
            )
        if self.outbox_size < 1:
            raise ValueError(f"outbox_size must be positive, got {self.outbox_size}")
        return self


@lru_cache()
def get_settings():
    return Settings()
