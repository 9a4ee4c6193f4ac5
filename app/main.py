from contextlib import asynccontextmanager
from fastapi import FastAPI, Request
from fastapi.middleware.cors import CORSMiddleware
from app.auth import build_token_verifier
from app.config import get_settings
from app.core.redis import close_redis, connect_redis, redis_health
from app.database import SessionLocal
from app.routers import analysis
from app.services.analysis_cache import AnalysisCache
from app.services.analysis_gateway import AnalysisGateway
from app.services.persistence_queue import PersistenceQueue
from app.services.redis_analysis_cache import RedisAnalysisCache
from app.services.single_flight import SingleFlight

settings = get_settings()


@asynccontextmanager
async def lifespan(app: FastAPI):
    # Fails fast on a missing SECRET_KEY before anything is opened
    verifier = build_token_verifier(settings)
    redis_client = await connect_redis(settings.redis_url)
    cache = AnalysisCache(
        SessionLocal,
        redis_cache=RedisAnalysisCache(redis_client, settings.analysis_cache_ttl_seconds) if redis_client else None,
    )
    persistence = PersistenceQueue(cache, maxsize=settings.persist_queue_size)
    persistence.start()

    app.state.redis = redis_client
    app.state.token_verifier = verifier
    app.state.persistence_queue = persistence
    app.state.analysis_gateway = AnalysisGateway(
        verifier=verifier,
        cache=cache,
        persistence=persistence,
        cache_error_policy=settings.cache_error_policy,
        single_flight=SingleFlight() if settings.single_flight_enabled else None,
        generation_timeout=settings.generation_timeout_seconds,
    )
    try:
        yield
    finally:
        await persistence.drain(settings.persist_drain_timeout_seconds)
        await close_redis(redis_client)


app = FastAPI(title="CV Analysis API", version="1.0.0", lifespan=lifespan)

app.add_middleware(
    CORSMiddleware,
    allow_origins=[settings.frontend_url],
    allow_credentials=True,
    allow_methods=["GET", "POST", "PUT", "OPTIONS"],
    allow_headers=["*"],
)

app.include_router(analysis.router)


@app.get("/")
def root():
    return {"message": "CV Analysis API", "docs": "/docs"}


@app.get("/health")
async def health(request: Request):
    """Liveness plus status of the Redis connection opened at startup. DB not checked here."""
    return {"status": "ok", **await redis_health(request.app.state.redis)}
