import logging
from typing import Dict

from fastapi import Depends, FastAPI, Request
from fastapi.middleware.cors import CORSMiddleware
from sqlalchemy import text
from starlette.responses import JSONResponse

from . import capability_routes, career_routes, usage_routes
from .config import Settings, get_settings
from .db.session import get_engine
from .errors import PlanningError
from .logging_config import configure_logging


configure_logging()
logger = logging.getLogger(__name__)
app = FastAPI(title="SkillPath Backend", version="0.1.0")
app.add_middleware(
    CORSMiddleware,
    allow_origins=["*"],
    allow_methods=["*"],
    allow_headers=["*"],
)
app.include_router(career_routes.router)
app.include_router(usage_routes.router)
app.include_router(capability_routes.router)

settings_snapshot = get_settings()
logger.info("Backend starting with agent model: %s", settings_snapshot.agent_model)
logger.info("OpenAI API key configured: %s", bool(settings_snapshot.openai_api_key))


@app.exception_handler(PlanningError)
async def planning_error_handler(request: Request, exc: PlanningError) -> JSONResponse:
    if exc.status_code >= 500:
        logger.error("%s %s failed: %s", request.method, request.url.path, exc.message)
    return JSONResponse(status_code=exc.status_code, content=exc.as_payload())


@app.get("/healthz")
def health(settings: Settings = Depends(get_settings)) -> Dict[str, str]:
    return {"status": "ok", "model": settings.agent_model}


@app.get("/healthz/database")
def database_health() -> JSONResponse:
    try:
        with get_engine().connect() as connection:
            connection.execute(text("SELECT 1"))
    except Exception as exc:  # noqa: BLE001
        logger.error("Database health check failed: %s", exc)
        return JSONResponse(status_code=503, content={"status": "unavailable", "detail": str(exc)})
    return JSONResponse(content={"status": "ok"})
