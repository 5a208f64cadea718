"""Global node settings"""

from pydantic_settings import BaseSettings


class Settings(BaseSettings):
    """
    Centralized configuration.
    Reads configs from env variables.
    """

    app_name: str = "Friend Chat Node"

    db_name: str = "friend_chat.db"

    default_page_limit: int = 10

    log_level: str = "INFO"

    model_config = {"env_file": ".env"}


settings = Settings()
