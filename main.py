from contextlib import asynccontextmanager
from fastapi import FastAPI
from fastapi.middleware.cors import CORSMiddleware
from fastapi.middleware.trustedhost import TrustedHostMiddleware
from partsledger.core.config import settings
from partsledger.core.logging_config import setup_logging
from partsledger.api.v1.api import api_router
from partsledger.middleware.logging import LoggingMiddleware
from partsledger.utils.date_time import utc_now


@asynccontextmanager
async def lifespan(app: FastAPI):
    setup_logging()
    yield


# Create FastAPI app
app_config = {
    "title": "Parts Ledger",
    "description": "Parts inventory ledger with purchase order, build order and monitoring workflows",
    "version": "1.0.0",
    "docs_url": "/api/docs",
    "lifespan": lifespan,
}

app = FastAPI(**app_config)

# Add middleware
app.add_middleware(
    CORSMiddleware,
    allow_origins=settings.ALLOWED_ORIGINS,
    allow_credentials=True,
    allow_methods=settings.ALLOWED_METHODS,
    allow_headers=settings.ALLOWED_HEADERS
)
app.add_middleware(TrustedHostMiddleware, allowed_hosts=["*"])
app.add_middleware(LoggingMiddleware)

# Include routers
app.include_router(api_router, prefix="/api/v1")

@app.get("/")
async def root():
    return {
        "message": "📦 Parts Ledger is running",
        "status": "active",
        "version": "1.0.0",
        "environment": settings.ENVIRONMENT,
        "docs": "/api/docs"
    }

@app.get("/health")
async def health_check():
    return {
        "status": "healthy",
        "timestamp": utc_now().isoformat(),
    }


def run_http():
    """Run HTTP server on port 9106"""
    import uvicorn
    print("🚀 Starting HTTP server on port 9106...")
    uvicorn.run(
        "main:app",  # Use string import
        host="0.0.0.0",
        port=9106,
        reload=False
    )


if __name__ == "__main__":
    run_http()
