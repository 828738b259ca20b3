from typing import Literal

from pydantic import field_validator
from pydantic_settings import BaseSettings


class Settings(BaseSettings):
    model_config = {"env_file": ".env", "env_file_encoding": "utf-8", "extra": "ignore"}

    telegram_bot_token: str
    allowed_user_ids: list[int] = []

    @field_validator("allowed_user_ids", mode="before")
    @classmethod
    def parse_user_ids(cls, v):
        if isinstance(v, str):
            return [int(x.strip()) for x in v.split(",") if x.strip()]
        if isinstance(v, int):
            return [v]
        return v

    default_currency: str = "ZAR"
    db_path: str = "budgetwise.db"

    completion_backend: Literal["anthropic", "http"] = "anthropic"
    anthropic_api_key: str | None = None
    completion_model: str = "sonnet"
    completion_api_url: str | None = None
    completion_api_key: str | None = None
    completion_timeout: int = 30
    completion_max_tokens: int = 600
    completion_temperature: float = 0.9

    fallback_temperature: float = 0.2
    fallback_max_rows: int = 50

    debug: bool = False
    health_check_port: int = 8080


settings = Settings()
