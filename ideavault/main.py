import logging
import time

from arq import create_pool
from fastapi import FastAPI
from fastapi.middleware.cors import CORSMiddleware
from fastapi.staticfiles import StaticFiles

from ideavault.api.v1.router import api_router
from ideavault.config import settings
from ideavault.core.redis_config import REDIS_SETTINGS
from ideavault.services.audio_service import audio_service

logger = logging.getLogger(__name__)

app = FastAPI(title="IdeaVault API", version="1.0.0", docs_url="/docs")

app.add_middleware(
    CORSMiddleware,
    allow_origins=["*"],  # Allow all origins for development
    allow_credentials=True,
    allow_methods=["*"],
    allow_headers=["*"],
)

# Stored recordings are served at the path recorded in Note.audio_url
app.mount(audio_service.url_prefix, StaticFiles(directory=settings.AUDIO_UPLOAD_DIR, check_dir=False), name="audio")

app.include_router(api_router)


@app.on_event("startup")
async def startup_event():
    """Create database tables on startup with retry logic"""
    from ideavault.db.base import Base
    from ideavault.db.session import engine

    max_retries = 5
    retry_delay = 2

    for attempt in range(max_retries):
        try:
            Base.metadata.create_all(bind=engine)
            logger.info("Database tables created successfully")
            break
        except Exception as e:
            logger.warning("Database connection attempt %d failed: %s", attempt + 1, e)
            if attempt < max_retries - 1:
                time.sleep(retry_delay)
            else:
                logger.error("Failed to connect to database after all retries")
                raise

    app.state.arq_pool = await create_pool(REDIS_SETTINGS)


@app.on_event("shutdown")
async def shutdown_event():
    if hasattr(app.state, "arq_pool"):
        await app.state.arq_pool.close()


@app.get("/health")
async def health_check():
    return {"status": "healthy"}
