# report_agent/docs.py
from typing import Any, Dict, List

from fastapi import FastAPI
from fastapi.openapi.utils import get_openapi

from report_agent.core.report_tools import TOOL_SPECS
from report_agent.settings import Settings

TAGS_METADATA: List[Dict[str, Any]] = [
    {"name": "health", "description": "Service and database status."},
    {
        "name": "reports",
        "description": (
            "Ask for a business report in natural language. The agent queries the "
            "ERP database **read-only** through Gemini function calling and returns a "
            "structured report plus the message transcript used for refinements."
        ),
    },
]

DESCRIPTION = (
    "Natural-language report agent over the ERP database (read-only).\n\n"
    "1. `POST /reports` with a prompt; the model inspects tables and runs SELECTs.\n"
    "2. The answer is validated into a report of table and chart sections.\n"
    "3. `POST /reports/refine` with the returned `messages` to adjust it."
)


def create_app(settings: Settings) -> FastAPI:
    app = FastAPI(
        title=settings.APP_NAME,
        version=settings.APP_VERSION,
        description=DESCRIPTION,
        openapi_tags=TAGS_METADATA,
    )

    def report_openapi():
        if app.openapi_schema:
            return app.openapi_schema
        schema = get_openapi(
            title=app.title,
            version=app.version,
            description=app.description,
            routes=app.routes,
            tags=TAGS_METADATA,
        )
        schema["servers"] = [{"url": settings.DOCS_SERVER_URL, "description": "Report agent"}]
        # tools the model may call, for readers of the transcript
        schema["x-report-tools"] = [
            {"name": t["name"], "description": t["description"]} for t in TOOL_SPECS
        ]
        app.openapi_schema = schema
        return schema

    app.openapi = report_openapi
    return app
