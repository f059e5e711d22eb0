import os
from contextlib import asynccontextmanager

from fastapi import FastAPI, Request
from fastapi.exception_handlers import http_exception_handler
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse
from starlette.exceptions import HTTPException as StarletteHTTPException

from sitechat.config import Settings
from sitechat.core import (
    Embedder,
    FallbackPolicy,
    KnowledgeOrchestrator,
    LLMWrapper,
    PromptComposer,
    RelevanceScorer,
    Retriever,
    VectorStore,
)
from sitechat.core.upstash_redis import UpstashRedis
from sitechat.ingestion.website import WebsiteIngester
from sitechat.routers import chat_router, upload_router


def build_orchestrator(settings: Settings) -> KnowledgeOrchestrator:
    """Wire every component from one validated Settings object."""
    vector_store = VectorStore(settings)
    retriever = Retriever(Embedder(settings), vector_store, top_k=settings.top_k_search)
    website = WebsiteIngester(
        concurrency=settings.crawl_concurrency,
        redis=UpstashRedis(settings.upstash_url, settings.upstash_token),
        cache_ttl_seconds=settings.crawl_cache_ttl_seconds,
    )
    policy = FallbackPolicy(
        min_score=settings.fallback_min_score,
        min_relevant=settings.fallback_min_relevant,
        crawl_enabled=settings.fallback_enabled,
        seed_urls=tuple(settings.seed_urls),
        page_budget=settings.page_budget,
        min_length_override=settings.fallback_min_length_override,
    )
    return KnowledgeOrchestrator(
        retriever=retriever,
        website=website,
        scorer=RelevanceScorer(min_token_length=settings.min_token_length),
        composer=PromptComposer(LLMWrapper(settings)),
        policy=policy,
    )


@asynccontextmanager
async def lifespan(app: FastAPI):
    """Validate configuration and build the pipeline before serving."""
    print("[Startup] Starting SiteChat API...", flush=True)
    if getattr(app.state, "orchestrator", None) is None:
        # raises ConfigurationError, which aborts startup
        settings = Settings.from_env()
        app.state.settings = settings
        app.state.orchestrator = build_orchestrator(settings)
        app.state.redis = app.state.orchestrator.website.redis
        print(f"[Startup] Index={settings.index_name} namespace={settings.namespace} seeds={settings.seed_urls}", flush=True)
    yield
    redis = getattr(app.state, "redis", None)
    if redis is not None:
        await redis.close()


app = FastAPI(
    title="SiteChat API",
    description="Retrieval-augmented chat over a document index with live site fallback",
    version="1.0.0",
    lifespan=lifespan
)


@app.middleware("http")
async def log_requests(request: Request, call_next):
    print(f"[MIDDLEWARE] Incoming request: {request.method} {request.url}", flush=True)
    response = await call_next(request)
    print(f"[MIDDLEWARE] Response status: {response.status_code}", flush=True)
    return response


@app.exception_handler(StarletteHTTPException)
async def method_not_allowed_handler(request: Request, exc: StarletteHTTPException):
    if exc.status_code == 405:
        return JSONResponse(status_code=405, content={"error": "Method not allowed"})
    return await http_exception_handler(request, exc)


app.add_middleware(
    CORSMiddleware,
    allow_origins=["*"],
    allow_credentials=False,  # must be False when allow_origins=["*"]
    allow_methods=["*"],
    allow_headers=["*"],
)

app.include_router(chat_router, prefix="/api")
app.include_router(upload_router, prefix="/api")


def run() -> None:
    import uvicorn
    port = int(os.getenv("PORT", 8000))
    uvicorn.run(app, host="0.0.0.0", port=port)


if __name__ == "__main__":
    run()
