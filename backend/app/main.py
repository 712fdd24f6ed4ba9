# recreo backend api
# fastapi app with async mongodb (local sqlite fallback), jwt auth, and gemini plan generation

import logging
from contextlib import asynccontextmanager

from fastapi import FastAPI
from fastapi.middleware.cors import CORSMiddleware

from app.config import settings
from app.services.db import db
from app.routers import auth, session, patients, plans, generator, dashboard

logging.basicConfig(
    level=logging.INFO,
    format="%(asctime)s - %(name)s - %(levelname)s - %(message)s",
)
logger = logging.getLogger(__name__)


@asynccontextmanager
async def lifespan(app: FastAPI):
    """startup: connect to mongodb. shutdown: close connection."""
    logger.info("Starting Recreo backend...")
    await db.connect()
    logger.info("Recreo backend ready")
    yield
    logger.info("Shutting down Recreo backend...")
    await db.close()


app = FastAPI(
    title="Recreo API",
    description="Backend API for Recreo, the recreational therapy plan generator: patients, plan generation, plan library",
    version="0.1.0",
    lifespan=lifespan,
)

# cors: allow frontend
app.add_middleware(
    CORSMiddleware,
    allow_origins=[settings.FRONTEND_URL, "http://localhost:3000"],
    allow_credentials=True,
    allow_methods=["*"],
    allow_headers=["*"],
    expose_headers=["X-Storage-Source", "Content-Disposition"],
)

# register routers
app.include_router(auth.router)
app.include_router(session.router)
app.include_router(patients.router)
app.include_router(plans.router)
app.include_router(generator.router)
app.include_router(dashboard.router)


@app.get("/health")
async def health_check():
    """basic health check endpoint"""
    return {"status": "ok", "service": "recreo-api"}
