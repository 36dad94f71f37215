"""
HealthGuard - consumer health information backend
FastAPI app: health assistant chat, symptom triage, accounts
"""

from contextlib import asynccontextmanager
from pathlib import Path
import logging

from fastapi import FastAPI
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import FileResponse, JSONResponse

from config import runtime_config
from errors import register_exception_handlers
from logging_config import setup_logging
from routers import auth, chat, triage
from services.container import build_services

setup_logging(runtime_config.log_level)
logger = logging.getLogger(__name__)

APP_NAME = "HealthGuard AI"


@asynccontextmanager
async def lifespan(app: FastAPI):
    """Startup/shutdown events"""
    # Startup
    logger.info(f"{APP_NAME} starting")
    services = await build_services(runtime_config)
    app.state.services = services

    if runtime_config.frontend_dir.is_dir():
        logger.info(f"Serving frontend from {runtime_config.frontend_dir}")
    else:
        logger.info(f"No frontend directory at {runtime_config.frontend_dir}; API only")

    yield

    # Shutdown
    await services.aclose()
    logger.info(f"{APP_NAME} signing off")


app = FastAPI(
    title=APP_NAME,
    description="Health assistant, symptom triage and accounts",
    version="1.0.0",
    lifespan=lifespan,
)

register_exception_handlers(app)

# CORS - open, the frontend may be served from anywhere
app.add_middleware(
    CORSMiddleware,
    allow_origins=["*"],
    allow_methods=["*"],
    allow_headers=["*"],
)

# API Routers (each carries its own /api prefix)
app.include_router(chat.router)
app.include_router(triage.router)
app.include_router(auth.router)


@app.get("/api/health")
async def health():
    """Health check with request queue and database state."""
    services = app.state.services
    database = {"status": "disabled", "mode": "memory"}
    if services.database is not None:
        database = await services.database.health_check()
    return {
        "status": "ok",
        "service": APP_NAME,
        "queue": services.queue.stats(),
        "database": database,
    }


@app.get("/{full_path:path}", include_in_schema=False)
async def frontend(full_path: str):
    """Serve static frontend files, falling back to index.html for client-side routes."""
    if full_path == "api" or full_path.startswith("api/"):
        return JSONResponse(status_code=404, content={"error": "Not found"})

    root = Path(runtime_config.frontend_dir).resolve()
    index = root / "index.html"

    if full_path:
        candidate = (root / full_path).resolve()
        # Stay inside the frontend directory
        if candidate.is_relative_to(root) and candidate.is_file():
            return FileResponse(candidate)

    if index.is_file():
        return FileResponse(index)
    return JSONResponse(status_code=404, content={"error": "Not found"})


if __name__ == "__main__":
    import uvicorn

    uvicorn.run(app, host="0.0.0.0", port=runtime_config.port)
