# storefront/config.py
import os
from dataclasses import dataclass
from typing import Optional


def _flag(name: str, default: bool = False) -> bool:
    return os.getenv(name, str(default)).lower() in ("1", "true", "yes")


@dataclass(frozen=True)
class Settings:
    database_url: str = "postgresql+asyncpg://postgres:postgres@db:5432/storefront_db"
    db_echo: bool = False
    create_tables: bool = True

    # settlement
    points_per_amount: int = 10
    settlement_max_attempts: int = 5
    settlement_retry_backoff: float = 0.05

    # notifications
    notifications_url: str = "http://notifications-service:8007"
    notify_max_attempts: int = 3
    notify_base_delay: float = 0.3
    notify_timeout: float = 3.0
    slack_webhook_url: Optional[str] = None

    # triggers
    low_stock_threshold: int = 10
    scheduler_enabled: bool = False
    pending_orders_interval_hours: int = 24

    # AI
    openai_api_key: Optional[str] = None
    openai_model: str = "gpt-4o-mini"

    log_level: str = "INFO"

    @classmethod
    def from_env(cls) -> "Settings":
        # Use env vars when available (containerized runs), otherwise the defaults above
        return cls(
            database_url=os.getenv("DATABASE_URL", cls.database_url),
            db_echo=_flag("DB_ECHO"),
            create_tables=_flag("DB_CREATE_TABLES", True),
            points_per_amount=int(os.getenv("POINTS_PER_AMOUNT", str(cls.points_per_amount))),
            settlement_max_attempts=int(os.getenv("SETTLEMENT_MAX_ATTEMPTS", str(cls.settlement_max_attempts))),
            settlement_retry_backoff=float(os.getenv("SETTLEMENT_RETRY_BACKOFF", str(cls.settlement_retry_backoff))),
            notifications_url=os.getenv("NOTIFICATIONS_URL", cls.notifications_url),
            notify_max_attempts=int(os.getenv("NOTIFY_MAX_ATTEMPTS", str(cls.notify_max_attempts))),
            notify_base_delay=float(os.getenv("NOTIFY_BASE_DELAY", str(cls.notify_base_delay))),
            notify_timeout=float(os.getenv("NOTIFY_TIMEOUT", str(cls.notify_timeout))),
            slack_webhook_url=os.getenv("SLACK_WEBHOOK_URL") or None,
            low_stock_threshold=int(os.getenv("LOW_STOCK_THRESHOLD", str(cls.low_stock_threshold))),
            scheduler_enabled=_flag("SCHEDULER_ENABLED"),
            pending_orders_interval_hours=int(
                os.getenv("PENDING_ORDERS_INTERVAL_HOURS", str(cls.pending_orders_interval_hours))
            ),
            openai_api_key=os.getenv("OPENAI_API_KEY") or None,
            openai_model=os.getenv("OPENAI_MODEL", cls.openai_model),
            log_level=os.getenv("LOG_LEVEL", cls.log_level).upper(),
        )
