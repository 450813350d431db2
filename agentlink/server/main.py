"""FastAPI entry-point hosting stateful agents."""
from __future__ import annotations

from fastapi import FastAPI

from agentlink.config import settings
from agentlink.observability.logging import setup_logging
from agentlink.server.routes import router as agents_router

setup_logging(
    log_level=settings.log_level,
    log_format=settings.log_format,
    service_name="agentlink-host",
    environment=settings.environment,
)

app = FastAPI(title="Agent Host")
app.include_router(agents_router)


@app.get("/health")
async def health() -> dict:
    return {"status": "ok"}
