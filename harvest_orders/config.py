from pydantic_settings import BaseSettings


class Settings(BaseSettings):
    orders_api_url: str = "http://localhost:3000/api/v1"
    orders_api_timeout_seconds: float = 10.0
    redis_url: str = "redis://localhost:6379/0"
    idempotency_ttl_seconds: int = 86400  # how long a submitted Idempotency-Key is remembered
    log_level: str = "INFO"

    class Config:
        env_file = ".env"
        extra = "ignore"


settings = Settings()
