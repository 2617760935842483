import os
from dataclasses import dataclass


@dataclass(frozen=True)
class Settings:
    database_url: str
    redis_url: str | None
    redis_prefix: str
    db_pool_min: int
    db_pool_max: int
    db_pool_timeout: float
    db_pool_max_waiting: int
    db_auto_migrate: bool
    public_rate_limit: int
    public_rate_window: int
    list_max_limit: int
    log_level: str


def load_settings() -> Settings:
    database_url = os.getenv("DATABASE_URL", "")
    if not database_url:
        raise RuntimeError("DATABASE_URL is required")

    db_pool_min = max(1, int(os.getenv("DB_POOL_MIN", "1")))
    db_pool_max = max(db_pool_min, int(os.getenv("DB_POOL_MAX", "10")))

    return Settings(
        database_url=database_url,
        redis_url=(os.getenv("REDIS_URL") or "").strip() or None,
        redis_prefix=(os.getenv("REDIS_PREFIX") or "fintrack").strip() or "fintrack",
        db_pool_min=db_pool_min,
        db_pool_max=db_pool_max,
        db_pool_timeout=float(os.getenv("DB_POOL_TIMEOUT", "30")),
        db_pool_max_waiting=int(os.getenv("DB_POOL_MAX_WAITING", "100")),
        db_auto_migrate=os.getenv("DB_AUTO_MIGRATE", "false").lower() == "true",
        public_rate_limit=int(os.getenv("PUBLIC_RATE_LIMIT", "120")),
        public_rate_window=int(os.getenv("PUBLIC_RATE_WINDOW", "60")),
        list_max_limit=max(1, int(os.getenv("LIST_MAX_LIMIT", "100"))),
        log_level=(os.getenv("LOG_LEVEL") or "INFO").strip().upper() or "INFO",
    )


settings = load_settings()
