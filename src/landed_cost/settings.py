from __future__ import annotations
import logging
from decimal import Decimal
from functools import lru_cache
from pathlib import Path

from pydantic_settings import BaseSettings
from pydantic import Field

logger = logging.getLogger("landed-cost-api")

CASH_FLOW_PRESETS = ("this_month", "next_3_months", "this_year")


class Settings(BaseSettings):
    # Reference carrier rate for demurrage previews; not a booked charge.
    demurrage_daily_rate_usd: Decimal = Field(default=Decimal("150"), alias="DEMURRAGE_DAILY_RATE_USD")

    # Optional override for the bundled bonded-warehouse schedule catalog.
    warehouse_schedules_path: str | None = Field(default=None, alias="WAREHOUSE_SCHEDULES_PATH")

    cash_flow_default_range: str = Field(default="next_3_months", alias="CASH_FLOW_DEFAULT_RANGE")
    log_level: str = Field(default="INFO", alias="LOG_LEVEL")

    model_config = {"env_file": ".env", "extra": "ignore", "populate_by_name": True}

    @property
    def warehouse_registry(self) -> Path | None:
        if not self.warehouse_schedules_path:
            return None
        path = Path(self.warehouse_schedules_path).expanduser()
        logger.debug("Warehouse schedule source → %s", path)
        return path

    @property
    def default_range(self) -> str:
        preset = (self.cash_flow_default_range or "").strip().lower()
        if preset not in CASH_FLOW_PRESETS:
            logger.warning("Unknown CASH_FLOW_DEFAULT_RANGE %r; using next_3_months", preset)
            return "next_3_months"
        return preset


@lru_cache(maxsize=None)
def get_settings() -> Settings:
    return Settings()


settings = get_settings()
