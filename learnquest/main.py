# ============================================================================
# FastAPI Application Entry Point
# ============================================================================
from fastapi import FastAPI, Request
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse
from contextlib import asynccontextmanager
from redis.exceptions import RedisError
import logging

from learnquest.config import get_settings
from learnquest.core.database import Base, build_engine, build_session_maker
from learnquest.core.exceptions import LearnQuestException
from learnquest.core.redis import RedisCache
from learnquest.core.timeutils import utcnow
from learnquest.schemas.responses import HealthCheckResponse
from learnquest.services.practice.judge import HttpJudgeClient
from learnquest.api.v1.router import api_router
import learnquest.models  # noqa: F401  (registers every table on Base.metadata)

settings = get_settings()

# Configure logging
logging.basicConfig(level=logging.DEBUG if settings.DEBUG else logging.INFO)
logger = logging.getLogger(__name__)

@asynccontextmanager
async def lifespan(app: FastAPI):
    """Application lifespan - startup and shutdown"""
    logger.info("🚀 Starting LearnQuest progress engine...")

    engine = build_engine(settings.DATABASE_URL, echo=False)
    app.state.engine = engine
    app.state.session_maker = build_session_maker(engine)

    # Initialize database tables
    try:
        async with engine.begin() as conn:
            await conn.run_sync(Base.metadata.create_all)
        logger.info("✅ Database tables created/verified")
    except Exception as e:
        logger.error(f"❌ Database initialization failed: {e}")
        raise

    # Initialize Redis (optional - continue uncached if it fails)
    app.state.cache = None
    if settings.CACHE_ENABLED:
        cache = RedisCache.from_url(settings.REDIS_URL)
        try:
            await cache.ping()
            app.state.cache = cache
            logger.info("✅ Redis connected")
        except (RedisError, OSError) as e:
            logger.warning(f"⚠️ Redis connection failed (non-critical): {e}")
            await cache.close()

    # Code execution service (optional - submissions answer 503 without it)
    app.state.judge = None
    if settings.JUDGE_URL:
        app.state.judge = HttpJudgeClient(settings.JUDGE_URL, settings.JUDGE_TIMEOUT_SECONDS)
        logger.info(f"✅ Judge client configured for {settings.JUDGE_URL}")
    else:
        logger.warning("⚠️ JUDGE_URL not set, practice submissions are disabled")

    logger.info("🎉 Application started successfully!")

    yield

    # Shutdown
    logger.info("👋 Shutting down...")
    if app.state.judge is not None:
        await app.state.judge.close()
    if app.state.cache is not None:
        await app.state.cache.close()
    await engine.dispose()

app = FastAPI(
    title=settings.APP_NAME,
    description="XP, levels, streaks and course progress for LearnQuest learners",
    version="1.0.0",
    lifespan=lifespan,
    docs_url="/docs",
    redoc_url="/redoc",
    openapi_url="/openapi.json"
)

# CORS Middleware
app.add_middleware(
    CORSMiddleware,
    allow_origins=["*"],
    allow_credentials=True,
    allow_methods=["*"],
    allow_headers=["*"],
)

# Exception Handler
@app.exception_handler(LearnQuestException)
async def learnquest_exception_handler(request: Request, exc: LearnQuestException):
    return JSONResponse(
        status_code=exc.status_code,
        content={"detail": exc.detail, "error_code": exc.error_code}
    )

@app.get("/health", response_model=HealthCheckResponse)
async def health_check():
    return HealthCheckResponse(
        status="healthy",
        app=settings.APP_NAME,
        version=app.version,
        timestamp=utcnow(),
    )

app.include_router(api_router, prefix=settings.API_V1_PREFIX)
