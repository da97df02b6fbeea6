"""
FastAPI application entry point.

This module initializes the FastAPI application, configures middleware,
and registers the import routers.
"""
from datetime import datetime
from contextlib import asynccontextmanager

from fastapi import FastAPI
from fastapi.middleware.cors import CORSMiddleware

from .core.config import settings
from .core.logging_config import configure_logging
from .api.dependencies import close_all_sessions
from .api.routers import imports

# Ensure logging is configured before the application starts serving requests.
configure_logging(settings.log_level)


@asynccontextmanager
async def lifespan(app: FastAPI):
    """Manage application lifecycle; open import sessions are disposed on shutdown."""
    yield
    await close_all_sessions()


app = FastAPI(
    title="CRM Contact Import API",
    version="1.0.0",
    description="Session-based CSV import of contacts into the contact service",
    lifespan=lifespan
)

app.add_middleware(
    CORSMiddleware,
    allow_origins=[origin.strip() for origin in settings.allowed_origins],
    allow_credentials=True,
    allow_methods=["*"],
    allow_headers=["*"],  # Authorization is forwarded to the contact service
)

app.include_router(imports.router)


@app.get("/")
async def root():
    """Root endpoint returning API information."""
    return {
        "message": "CRM Contact Import API",
        "version": "1.0.0"
    }


@app.get("/health")
async def health_check():
    """Health check endpoint for deployment monitoring."""
    return {
        "status": "healthy",
        "timestamp": datetime.now().isoformat(),
        "service": "crm-contact-import"
    }
