import logging
from fastapi import FastAPI
from fastapi.middleware.cors import CORSMiddleware
from resumerank.api.routes import router
from resumerank.core.config import settings
from resumerank.core.errors import register_exception_handlers
from resumerank.db.database import engine
from resumerank.db.base import Base
from resumerank.realtime.channels import get_channel_hub
import resumerank.models  # noqa: F401  registers every table on Base.metadata
from dotenv import load_dotenv
load_dotenv()


logging.basicConfig(
    level=settings.LOG_LEVEL,
    format="%(asctime)s %(levelname)s %(name)s: %(message)s",
)

app = FastAPI(title=settings.APP_NAME)

logger = logging.getLogger(__name__)

register_exception_handlers(app)

app.add_middleware(
    CORSMiddleware,
    allow_origins=settings.CORS_ORIGINS,
    allow_credentials=True,
    allow_methods=["GET", "POST", "PUT", "PATCH", "DELETE", "OPTIONS"],
    allow_headers=["*"],
)


@app.on_event("startup")
async def on_startup():
    async with engine.begin() as conn:
        await conn.run_sync(Base.metadata.create_all)
    await get_channel_hub().start()
    logger.info(f"{settings.APP_NAME} started")


@app.on_event("shutdown")
async def on_shutdown():
    await get_channel_hub().stop()

app.include_router(router)


@app.get("/")
async def root():
    return {"status": "healthy", "message": "ResumeRank AI backend is running"}


@app.get("/health")
async def health_check():
    return {"status": "healthy"}
