# coach analytics backend api
# fastapi app with async mongodb, windowed client metrics and doctor dashboard rollups

import logging
from contextlib import asynccontextmanager

from fastapi import FastAPI, Request, status
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse

from coach_analytics.config import settings
from coach_analytics.errors import InvalidPeriodError
from coach_analytics.services.db import db
from coach_analytics.routers import clients, doctors

logging.basicConfig(
    level=logging.INFO,
    format="%(asctime)s - %(name)s - %(levelname)s - %(message)s",
)
logger = logging.getLogger(__name__)


@asynccontextmanager
async def lifespan(app: FastAPI):
    """startup: connect to mongodb. shutdown: close connection."""
    logger.info("Starting coach analytics backend...")
    await db.connect()
    logger.info("Coach analytics backend ready")
    yield
    logger.info("Shutting down coach analytics backend...")
    await db.close()


app = FastAPI(
    title="Coach Analytics API",
    description="Windowed client metrics, profile sections and doctor dashboard analytics",
    version="0.1.0",
    lifespan=lifespan,
)

app.add_middleware(
    CORSMiddleware,
    allow_origins=[settings.FRONTEND_URL, "http://localhost:3000"],
    allow_credentials=True,
    allow_methods=["*"],
    allow_headers=["*"],
)

app.include_router(clients.router)
app.include_router(doctors.router)


@app.exception_handler(InvalidPeriodError)
async def invalid_period_handler(request: Request, exc: InvalidPeriodError):
    return JSONResponse(status_code=status.HTTP_400_BAD_REQUEST, content={"detail": str(exc)})


@app.get("/health")
async def health_check():
    """basic health check endpoint"""
    return {"status": "ok", "service": "coach-analytics-api"}
