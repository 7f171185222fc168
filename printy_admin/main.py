# Load environment variables FIRST, before any module imports that need them
from dotenv import load_dotenv
load_dotenv()

import logging
from contextlib import asynccontextmanager
from typing import Dict

from fastapi import APIRouter, FastAPI
from fastapi.middleware.cors import CORSMiddleware
from slowapi import _rate_limit_exceeded_handler
from slowapi.errors import RateLimitExceeded

from .config import CORS_ORIGINS, SEED_ON_STARTUP
from .db import SessionLocal, init_db
from .logging_config import setup_logging
from .routes import chat_router, limiter
from .seed import seed_records

# Configure logging at module load time
setup_logging()

logger = logging.getLogger(__name__)


@asynccontextmanager
async def lifespan(app: FastAPI):
    init_db()
    if SEED_ON_STARTUP:
        with SessionLocal() as db:
            seed_records(db)
    logger.info("Printy admin assistant ready")
    yield


def create_app() -> FastAPI:
    """Build the FastAPI application with the chat routes under both prefixes."""
    app = FastAPI(
        title="Printy Admin Assistant API",
        description="Rule-based chat assistant for order, ticket and service administration",
        version="0.1.0",
        lifespan=lifespan,
        openapi_tags=[
            {"name": "Health", "description": "Health check endpoints"},
            {"name": "Admin Chat", "description": "Admin assistant conversations"},
        ],
    )

    # Add rate limit exception handler
    app.state.limiter = limiter
    app.add_exception_handler(RateLimitExceeded, _rate_limit_exceeded_handler)

    # In production, set CORS_ORIGINS to the dashboard's origin
    app.add_middleware(
        CORSMiddleware,
        allow_origins=CORS_ORIGINS,
        allow_credentials=True,
        allow_methods=["*"],
        allow_headers=["*"],
    )

    api_v1_router = APIRouter(prefix="/api/v1")
    api_v1_router.include_router(chat_router)
    app.include_router(api_v1_router)

    # Also mount at root for backward compatibility
    app.include_router(chat_router)

    @app.get("/health", tags=["Health"])
    def health() -> Dict[str, str]:
        """Health check endpoint. Returns ok if the service is running."""
        return {"status": "ok"}

    return app


app = create_app()


if __name__ == "__main__":
    import uvicorn

    uvicorn.run("printy_admin.main:app", host="0.0.0.0", port=8000)
