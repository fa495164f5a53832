from fastapi import FastAPI

from app.api.routes import health
from app.api.v1 import v1_router
from app.core.config import settings
from app.core.logging_config import setup_logging

setup_logging()

app = FastAPI(title=settings.APP_NAME, debug=settings.DEBUG)

app.include_router(health.router)
app.include_router(v1_router)
