from pydantic import field_validator
from pydantic_settings import BaseSettings


class Settings(BaseSettings):
    model_config = {"env_file": ".env", "env_file_encoding": "utf-8", "extra": "ignore"}

    telegram_bot_token: str
    allowed_chat_ids: list[int] = []

    @field_validator("allowed_chat_ids", mode="before")
    @classmethod
    def parse_chat_ids(cls, v):
        if isinstance(v, str):
            return [int(x.strip()) for x in v.split(",") if x.strip()]
        if isinstance(v, int):
            return [v]
        return v

    api_base_url: str = "http://localhost:5000/api"
    request_timeout: float = 10.0
    db_path: str = "spendwise.db"
    currency_symbol: str = "₹"
    list_limit: int = 15
    debug: bool = False
    health_check_port: int = 8080


settings = Settings()
