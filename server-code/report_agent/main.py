# =========================
# report_agent/main.py
# =========================
from __future__ import annotations

import logging
from fastapi.middleware.cors import CORSMiddleware

from report_agent.deps import settings
from report_agent.docs import create_app
from report_agent.routers import health, reports

logging.basicConfig(
    level=logging.INFO,
    format="%(asctime)s %(levelname)s [%(name)s] %(message)s",
)

# Quiet noisy third-party loggers
logging.getLogger("httpx").setLevel(logging.WARNING)
logging.getLogger("urllib3").setLevel(logging.WARNING)
logging.getLogger("google").setLevel(logging.WARNING)
logging.getLogger("sqlalchemy.engine").setLevel(logging.WARNING)

app = create_app(settings())

# CORS (dev-open; tighten for prod)
app.add_middleware(
    CORSMiddleware,
    allow_origins=["*"],
    allow_credentials=True,
    allow_methods=["*"],
    allow_headers=["*"],
)

# health router defines its own paths ("/health", "/health/db")
app.include_router(health.router)

# reports router already has prefix="/reports"
app.include_router(reports.router)

if settings().GEMINI_API_KEY is None:
    logging.getLogger(__name__).warning("GEMINI_API_KEY is not set; report requests will be refused")
