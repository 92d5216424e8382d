import logging
from contextlib import asynccontextmanager

from fastapi import FastAPI, Request
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse
from sqlalchemy import text

from election_dashboard.ai_feature.errors import AskAIError
from election_dashboard.ai_feature.llm import GeminiClient
from election_dashboard.api.router import api_router
from election_dashboard.core.config import settings
from election_dashboard.core.database import build_engine, build_session_factory

logging.basicConfig(level=settings.LOG_LEVEL)
logger = logging.getLogger(__name__)


# Build the shared resources once and close the pool when the app stops
@asynccontextmanager
async def lifespan(app: FastAPI):
    engine = build_engine(settings)
    app.state.engine = engine
    app.state.session_factory = build_session_factory(engine)
    app.state.llm = GeminiClient.from_settings(settings)

    # The dataset is loaded out-of-band, so only check that it is reachable
    try:
        async with engine.connect() as conn:
            await conn.execute(text("SELECT 1"))
        logger.info("Database connection successful")
    except Exception as e:
        logger.error(f"Database connection failed during startup: {e}")

    yield
    await engine.dispose()


app = FastAPI(title="Lok Sabha Election Analytics API", lifespan=lifespan)

app.add_middleware(
    CORSMiddleware,
    allow_origins=settings.CORS_ORIGINS,
    allow_methods=["*"],
    allow_headers=["*"],
)

# Include the master router containing all our endpoints
app.include_router(api_router, prefix=settings.API_PREFIX)


@app.exception_handler(AskAIError)
async def ask_ai_error_handler(request: Request, exc: AskAIError):
    return JSONResponse(status_code=exc.status_code, content=exc.to_response())


@app.get("/")
async def root():
    return {"message": "Welcome to the Lok Sabha Election Analytics API"}
