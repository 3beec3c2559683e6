from fastapi import FastAPI
from bestsellers.core.config import get_settings
from bestsellers.core.lifespan import lifespan
from bestsellers.api.v1.routers.bestsellers import router as bestsellers_router
from bestsellers.api.v1.routers.snapshot import router as snapshot_router
from bestsellers.core.logging import configure_logging

import logging

settings = get_settings()
configure_logging(level=logging.DEBUG if settings.DEBUG else logging.INFO)

app = FastAPI(title=settings.APP_NAME, lifespan=lifespan)

# ------- Routes -------
# CORS, health checks and warm-up live in the hosting gateway.
app.include_router(bestsellers_router, prefix=settings.api_prefix)   # query entry point
app.include_router(snapshot_router, prefix=settings.api_prefix)      # scheduled snapshot job
