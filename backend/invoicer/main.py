from fastapi import FastAPI, Request
from fastapi.exceptions import RequestValidationError
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse
from invoicer.routers import invoices, uploads
from invoicer.database import engine, Base
from invoicer.config import settings
from invoicer.exceptions import NotFoundError, PersistenceError, ValidationError
import invoicer.models  # noqa: F401  registers tables on Base.metadata
import logging
import sys

# Configure logging
logging.basicConfig(
    level=logging.INFO,
    format='%(asctime)s - %(name)s - %(levelname)s - %(message)s',
    handlers=[
        logging.StreamHandler(sys.stdout)
    ]
)

logger = logging.getLogger(__name__)

logger.info("=" * 60)
logger.info("Starting Invoicer API")
logger.info("=" * 60)
logger.info(f"Database: {settings.database_url.split('@')[-1]}")
logger.info(f"S3 storage configured: {bool(settings.storage_access_key_id and settings.storage_secret_access_key)}")
logger.info(f"Logo fetch timeout: {settings.logo_fetch_timeout_seconds}s")
logger.info("=" * 60)

# Create tables (in production, use migrations)
Base.metadata.create_all(bind=engine)

app = FastAPI(
    title="Invoicer API",
    description="API for creating, pricing and rendering invoices",
    version="1.0.0"
)


def parse_cors_origins(origins_str: str) -> list:
    """Parse CORS origins string into a list."""
    return [origin.strip() for origin in origins_str.split(",") if origin.strip()]


app.add_middleware(
    CORSMiddleware,
    allow_origins=parse_cors_origins(settings.cors_origins),
    allow_credentials=True,
    allow_methods=["GET", "POST", "PUT", "DELETE", "OPTIONS", "PATCH"],
    allow_headers=["*"],
    expose_headers=["Content-Disposition", "X-Rendering-Degraded"],
)

# Include routers
app.include_router(invoices.router)
app.include_router(uploads.router)


@app.get("/")
def root():
    return {"message": "Invoicer API", "version": "1.0.0"}


@app.get("/health")
def health_check():
    return {"status": "healthy"}


def _validation_message(exc: RequestValidationError) -> str:
    messages = []
    for error in exc.errors():
        location = ".".join(str(part) for part in error.get("loc", ()) if part != "body")
        message = error.get("msg", "Invalid value")
        messages.append(f"{location}: {message}" if location else message)
    return "; ".join(messages) or "Invalid request"


@app.exception_handler(RequestValidationError)
async def request_validation_handler(request: Request, exc: RequestValidationError):
    return JSONResponse(status_code=400, content={"detail": _validation_message(exc)})


@app.exception_handler(ValidationError)
async def validation_error_handler(request: Request, exc: ValidationError):
    return JSONResponse(status_code=400, content={"detail": str(exc)})


@app.exception_handler(NotFoundError)
async def not_found_handler(request: Request, exc: NotFoundError):
    return JSONResponse(status_code=404, content={"detail": str(exc)})


@app.exception_handler(PersistenceError)
async def persistence_error_handler(request: Request, exc: PersistenceError):
    logger.error(f"Persistence failure on {request.url.path}: {str(exc)}", exc_info=exc)
    return JSONResponse(status_code=500, content={"detail": str(exc)})


@app.exception_handler(Exception)
async def global_exception_handler(request: Request, exc: Exception):
    """Global exception handler so unexpected failures still return JSON"""
    logger.error(f"Unhandled exception: {str(exc)}", exc_info=exc)
    return JSONResponse(
        status_code=500,
        content={"detail": f"Internal server error: {str(exc)}"},
    )
