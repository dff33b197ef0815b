import logging
from contextlib import asynccontextmanager

import uvicorn
from fastapi import FastAPI, Response
from fastapi.middleware.cors import CORSMiddleware
from prometheus_client import CONTENT_TYPE_LATEST, generate_latest

from term_access.config import settings
from term_access.exception_handlers import register_exception_handlers
from term_access.routes import access, terms, users
from term_access.utils.cache import cache_manager
from term_access.utils.metrics import set_app_info

logging.basicConfig(level=logging.INFO, format="%(asctime)s - %(levelname)s - %(name)s - %(message)s")
logger = logging.getLogger(__name__)


@asynccontextmanager
async def lifespan(app: FastAPI):
    set_app_info(settings.app_version, settings.environment)
    await cache_manager.connect()
    logger.info("%s %s started (%s)", settings.app_name, settings.app_version, settings.environment)
    yield
    await cache_manager.disconnect()


app = FastAPI(title=settings.app_name, version=settings.app_version, lifespan=lifespan)

app.add_middleware(
    CORSMiddleware,
    allow_origins=settings.allowed_origins,
    allow_credentials=True,
    allow_methods=["*"],
    allow_headers=["*"],
)

register_exception_handlers(app)

app.include_router(terms.router, prefix="/api/v1/terms")
app.include_router(access.router, prefix="/api/v1/access")
app.include_router(users.router, prefix="/api/v1/users")


@app.get("/health")
async def health() -> dict:
    return {"status": "ok", "version": settings.app_version}


@app.get("/metrics")
async def metrics() -> Response:
    return Response(content=generate_latest(), media_type=CONTENT_TYPE_LATEST)


if __name__ == "__main__":
    uvicorn.run("main:app", host="0.0.0.0", port=8000, reload=settings.debug)
