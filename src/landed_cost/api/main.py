from __future__ import annotations

import logging
from typing import Any, Dict

from fastapi import FastAPI
from fastapi.middleware.cors import CORSMiddleware

from .routes import router as v1_router
from ..settings import get_settings

# ---------------- Logging ----------------
logging.basicConfig(
    level=getattr(logging, get_settings().log_level.upper(), logging.INFO),
    format="%(asctime)s %(levelname)s [%(name)s] %(message)s",
)
logger = logging.getLogger("landed-cost-api")

API_VERSION = "0.1.0"

app = FastAPI(
    title="Landed Cost Engine",
    description="Landed-cost simulation, demurrage exposure and cash-flow projection for import processes",
    version=API_VERSION,
    docs_url="/api/docs",
    openapi_url="/api/openapi.json",
)

app.add_middleware(
    CORSMiddleware,
    allow_origins=["*"],
    allow_methods=["*"],
    allow_headers=["*"],
)

app.include_router(v1_router)


@app.get("/health", tags=["System"])
def health() -> Dict[str, Any]:
    s = get_settings()
    return {
        "status": "ok",
        "version": API_VERSION,
        "demurrage_daily_rate_usd": str(s.demurrage_daily_rate_usd),
        "cash_flow_default_range": s.default_range,
    }
