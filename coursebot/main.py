import logging

from fastapi import FastAPI, Request
from fastapi.responses import JSONResponse

from coursebot.core.config import settings
from coursebot.core.errors import CoursebotError
from coursebot.core.logging import setup_logging
from coursebot.services.tutor_service import TutorService, build_tutor_service

from coursebot.api.routes_ingest import router as ingest_router
from coursebot.api.routes_search import router as search_router
from coursebot.api.routes_chat import router as chat_router
from coursebot.api.routes_documents import router as docs_router
from coursebot.api.routes_index import router as index_router

logger = logging.getLogger(__name__)

def create_app(tutor: TutorService | None = None):
    setup_logging()
    if tutor is None:
        tutor = build_tutor_service(settings)
        # Validate the collection early (may rebuild it on a dimension change)
        try:
            tutor.initialize()
        except CoursebotError as e:
            # Don't block startup; /health will expose dependency state.
            logger.warning("Vector index not ready at startup: %s", e)

    app = FastAPI(title=settings.APP_NAME)
    app.state.tutor = tutor

    # Allow browser-based UIs to call the API from localhost
    from fastapi.middleware.cors import CORSMiddleware
    origins = [o.strip() for o in (settings.CORS_ORIGINS or "").split(",") if o.strip()]
    if origins:
        app.add_middleware(
            CORSMiddleware,
            allow_origins=origins,
            allow_credentials=True,
            allow_methods=["*"],
            allow_headers=["*"],
        )

    @app.exception_handler(CoursebotError)
    async def coursebot_error_handler(request: Request, exc: CoursebotError):
        if exc.status_code >= 500:
            logger.error("%s %s failed: %s", request.method, request.url.path, exc)
        return JSONResponse(status_code=exc.status_code, content=exc.to_dict())

    app.include_router(ingest_router)
    app.include_router(search_router)
    app.include_router(chat_router)
    app.include_router(docs_router)
    app.include_router(index_router)

    @app.get("/health")
    async def health():
        import httpx
        checks = {"qdrant": False, "llm": False}
        # qdrant
        try:
            stats = tutor.get_index_stats()
            checks["qdrant"] = stats.status != "missing"
        except CoursebotError:
            stats = None
        # ollama (OpenAI is assumed reachable)
        if settings.LLM_PROVIDER == "openai":
            checks["llm"] = bool(settings.OPENAI_API_KEY)
        else:
            try:
                async with httpx.AsyncClient(timeout=3.0) as c:
                    r = await c.get(f"{settings.OLLAMA_BASE_URL.rstrip('/')}/api/tags")
                    checks["llm"] = r.status_code == 200
            except httpx.HTTPError:
                pass

        ok = all(checks.values())
        return {
            "ok": ok,
            "app": settings.APP_NAME,
            "env": settings.ENV,
            "deps": checks,
            "index": stats.model_dump() if stats else None,
        }

    return app
