from fastapi import FastAPI, Request, status
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse
from fastapi.exceptions import RequestValidationError
import logging
from time import time

from app.core.config import settings
from app.core.exceptions import RequestValidationFailed, ResultNotFound
from app.api.v1.endpoints import bulk_find, find_email, history, verify
from app.services.container import build_services

# Configure logging
logging.basicConfig(
    level=logging.DEBUG if settings.DEBUG else logging.INFO,
    format='%(asctime)s - %(name)s - %(levelname)s - %(message)s'
)
logger = logging.getLogger(__name__)

app = FastAPI(
    title=settings.APP_NAME,
    version="1.0.0",
    docs_url="/api/docs",
    openapi_url="/api/openapi.json"
)

app.add_middleware(
    CORSMiddleware,
    allow_origins=["*"],
    allow_credentials=False,
    allow_methods=["GET", "POST", "OPTIONS"],
    allow_headers=["*"],
)


# Request logging middleware
@app.middleware("http")
async def log_requests(request: Request, call_next):
    start_time = time()
    method = request.method
    path = request.url.path
    client_ip = request.client.host if request.client else "unknown"

    logger.info(f"→ {method} {path} from {client_ip}")

    response = await call_next(request)

    duration = time() - start_time
    status_code = response.status_code
    if status_code == 404:
        logger.warning(f"✗ 404 NOT FOUND: {method} {path} from {client_ip} (duration: {duration:.3f}s)")
    else:
        logger.info(f"← {method} {path} → {status_code} (duration: {duration:.3f}s)")

    return response


@app.exception_handler(RequestValidationFailed)
async def validation_failed_handler(request: Request, exc: RequestValidationFailed):
    logger.warning(f"Rejected {request.method} {request.url.path}: {exc.message}")
    return JSONResponse(status_code=status.HTTP_400_BAD_REQUEST, content={"detail": exc.message})


@app.exception_handler(RequestValidationError)
async def request_validation_handler(request: Request, exc: RequestValidationError):
    errors = []
    for error in exc.errors():
        location = ".".join(str(part) for part in error.get("loc", ()) if part != "body")
        errors.append(f"{location}: {error.get('msg')}" if location else str(error.get("msg")))
    detail = "Invalid request: " + "; ".join(errors)
    logger.warning(f"Rejected {request.method} {request.url.path}: {detail}")
    return JSONResponse(status_code=status.HTTP_400_BAD_REQUEST, content={"detail": detail})


@app.exception_handler(ResultNotFound)
async def result_not_found_handler(request: Request, exc: ResultNotFound):
    return JSONResponse(status_code=status.HTTP_404_NOT_FOUND, content={"detail": str(exc)})


# Global exception handler
@app.exception_handler(Exception)
async def global_exception_handler(request: Request, exc: Exception):
    logger.exception(f"Unhandled exception: {exc} for {request.method} {request.url.path}")
    return JSONResponse(
        status_code=status.HTTP_500_INTERNAL_SERVER_ERROR,
        content={"detail": str(exc)},
    )


# Health check endpoint
@app.get("/health")
async def health_check():
    return {"status": "healthy"}


# Include routers
app.include_router(find_email.router, prefix="/api/v1", tags=["find-email"])
app.include_router(bulk_find.router, prefix="/api/v1", tags=["bulk-find-email"])
app.include_router(verify.router, prefix="/api/v1", tags=["verify-email"])
app.include_router(history.router, prefix="/api/v1", tags=["history"])


@app.on_event("startup")
async def startup_tasks():
    """Build the shared clients once and log registered routes."""
    if getattr(app.state, "services", None) is None:
        app.state.services = build_services()
        logger.info("✓ Query backend, cache, results store and verifier initialized")

    routes = []
    for route in app.routes:
        if hasattr(route, "methods") and hasattr(route, "path"):
            for method in route.methods:
                if method != "HEAD":
                    routes.append(f"  {method:6} {route.path}")
    logger.info("REGISTERED ROUTES:")
    for route in sorted(routes):
        logger.info(route)


@app.on_event("shutdown")
async def shutdown_tasks():
    services = getattr(app.state, "services", None)
    if services is not None:
        await services.close()
