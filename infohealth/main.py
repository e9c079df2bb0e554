import logging
from contextlib import asynccontextmanager
from functools import lru_cache
from typing import List, Optional

from fastapi import FastAPI, Depends, BackgroundTasks, HTTPException, Request
from fastapi.exceptions import RequestValidationError
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse, Response

from infohealth.config import Settings, get_settings
from infohealth.models.api import (
    ChatRequest, ChatResponse, EnhanceRequest, EnhanceResponse, HealthResponse,
)
from infohealth.models.metrics import MetricsSummary, TimeRange
from infohealth.services.enhance import EnhanceService
from infohealth.services.logger import log_result_background
from infohealth.services.metrics import MetricsService
from infohealth.services.router import RoutingService
from infohealth.utils.db import Database

settings = get_settings()

# Setup Logging
logging.basicConfig(level=settings.LOG_LEVEL)
logger = logging.getLogger("infohealth")

USAGE = "POST /chat with JSON { message, specialty?, prefer? }"
USAGE_EXAMPLE = {
    "message": "Neuropatía diabética: síntomas y manejo",
    "specialty": "General",
    "prefer": {"provider": "auto", "lang": "es"},
}


# ─── Dependencies ───────────────────────────────────────

@lru_cache
def get_routing_service() -> RoutingService:
    return RoutingService.from_settings(get_settings())

def get_enhance_service(router_service: RoutingService = Depends(get_routing_service)) -> EnhanceService:
    return EnhanceService(router_service)

@lru_cache
def _database(url: str) -> Database:
    return Database(url)

def get_database() -> Optional[Database]:
    """Request log database, or None when DATABASE_URL is unset."""
    url = get_settings().DATABASE_URL
    return _database(url) if url else None


@asynccontextmanager
async def lifespan(app: FastAPI):
    keys = get_settings().provider_keys()
    logger.info(
        "Boot: providers hasOpenAI=%s hasAnthropic=%s hasGemini=%s",
        bool(keys.openai), bool(keys.anthropic), bool(keys.gemini),
    )
    database = get_database()
    # Startup: Ensure request log table exists
    if database is not None:
        await database.create_all()
    yield
    # Shutdown
    if database is not None:
        await database.dispose()

app = FastAPI(
    title="InfoHealth AI Gateway",
    description="Routes educational health questions to OpenAI, Gemini or Anthropic with ordered fallback.",
    version="1.0.0",
    lifespan=lifespan
)

def add_cors(target: FastAPI, allowed_origins: List[str]) -> None:
    # No allow-list configured → every origin. Requests without Origin are never blocked.
    target.add_middleware(
        CORSMiddleware,
        allow_origins=allowed_origins or ["*"],
        allow_methods=["GET", "POST", "OPTIONS"],
        allow_headers=["Content-Type", "Authorization"],
    )

add_cors(app, settings.allowed_origin_list())


@app.exception_handler(RequestValidationError)
async def validation_exception_handler(request: Request, exc: RequestValidationError):
    """Malformed bodies are a 400 with a short error, never a 422."""
    errors = exc.errors()
    message_error = any("message" in err.get("loc", ()) for err in errors)
    return JSONResponse(
        status_code=400,
        content={
            "error": "message required" if message_error else "invalid request",
            "details": [
                {"loc": list(err.get("loc", ())), "msg": err.get("msg", "")}
                for err in errors
            ],
        },
    )


# ─── Routes ─────────────────────────────────────────────

@app.get("/health", response_model=HealthResponse)
async def health_check(s: Settings = Depends(get_settings)):
    keys = s.provider_keys()
    return HealthResponse(
        expects=USAGE,
        hasOpenAI=bool(keys.openai),
        hasAnthropic=bool(keys.anthropic),
        hasGemini=bool(keys.gemini),
        models={
            "openai": s.OPENAI_MODEL,
            "anthropic": s.ANTHROPIC_MODEL,
            "gemini": s.GEMINI_MODEL,
        },
    )

@app.get("/chat")
async def chat_usage():
    return JSONResponse(
        status_code=405,
        content={"error": f"Use {USAGE}", "example": USAGE_EXAMPLE},
    )

@app.post("/chat", response_model=ChatResponse, response_model_exclude_none=True)
async def chat_endpoint(
    request: ChatRequest,
    background_tasks: BackgroundTasks,
    router_service: RoutingService = Depends(get_routing_service),
    database: Optional[Database] = Depends(get_database),
):
    # Never raises: provider failures come back as fallback / error results
    result = await router_service.route_request(request)

    if database is not None:
        background_tasks.add_task(log_result_background, database, request.message, result)

    return ChatResponse(
        text=result.text,
        provider=result.provider,
        ms=round(result.elapsed_ms, 2),
        lang=result.language,
        mode=result.mode,
        model=result.model,
        error=result.error,
    )

@app.post("/enhance", response_model=EnhanceResponse)
async def enhance_endpoint(
    body: EnhanceRequest,
    enhance_service: EnhanceService = Depends(get_enhance_service),
):
    """
    Expands reference guidance for a handful of topics.
    Topics outside the allow-list, or total provider failure, return the base text.
    """
    if not body.base or not body.topic:
        return JSONResponse(status_code=400, content={"error": "Missing base/topic"})
    return await enhance_service.enhance(body)

@app.get("/metrics/summary", response_model=MetricsSummary)
async def get_metrics(
    range: TimeRange = TimeRange.last_24h,
    database: Optional[Database] = Depends(get_database),
):
    """
    Aggregated routing outcomes from the request log.
    """
    if database is None:
        raise HTTPException(status_code=404, detail="Request log disabled (DATABASE_URL not set)")
    async with database.session_factory() as session:
        return await MetricsService.get_summary(session, range)

@app.get("/favicon.ico", include_in_schema=False)
async def favicon():
    return Response(status_code=204)


def run():
    import uvicorn

    s = get_settings()
    uvicorn.run("infohealth.main:app", host=s.HOST, port=s.PORT, log_level=s.LOG_LEVEL.lower())

if __name__ == "__main__":
    run()
