from fastapi import FastAPI

from .api import host
from .logging_config import setup_logging

setup_logging()

app = FastAPI(title="hostprobe")

app.include_router(host.router, prefix="/host", tags=["host"])
