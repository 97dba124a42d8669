from fastapi import FastAPI, Request
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse
from starlette.exceptions import HTTPException as StarletteHTTPException
from starlette.middleware.base import BaseHTTPMiddleware
from contextlib import asynccontextmanager
from datetime import datetime, timezone
from app.config import settings
from app.database.connection import close_db, init_db
from app.controllers.call_controller import router as call_router
from app.controllers.telnyx_controller.webhook_controller import router as webhook_router
from app.services.telnyx_service.call_coordinator import call_coordinator
from app.services.zapier_service import cancel_pending_deliveries
import logging
import platform
import time

logging.basicConfig(
    level=getattr(logging, settings.LOG_LEVEL.upper(), logging.INFO),
    format="%(asctime)s %(levelname)s %(name)s: %(message)s"
)
logger = logging.getLogger(__name__)


class RequestLoggingMiddleware(BaseHTTPMiddleware):
    """Middleware to log all incoming requests"""
    async def dispatch(self, request: Request, call_next):
        start_time = time.time()
        client_ip = request.client.host if request.client else "unknown"
        logger.info(f"🌐 Request: {request.method} {request.url.path} from {client_ip}")

        response = await call_next(request)

        process_time = time.time() - start_time
        logger.info(f"✅ Response: {response.status_code} for {request.method} {request.url.path} ({process_time:.3f}s)")
        return response


@asynccontextmanager
async def lifespan(app: FastAPI):
    try:
        await init_db()
    except Exception as e:
        logger.error(f"❌ Database initialization failed: {str(e)}", exc_info=True)
        raise

    logger.info("💧 Water Damage Lead System started")
    logger.info(f"Webhook URL: {settings.webhook_url or '(WEBHOOK_BASE_URL not set)'}")
    logger.info(f"Telnyx number: {settings.TELNYX_PHONE_NUMBER or 'Not set'}")
    logger.info(f"Human number: {settings.HUMAN_PHONE_NUMBER or 'Not set'}")
    logger.info(f"Cloudinary mirror: {'enabled' if settings.cloudinary_configured else 'disabled'}")
    logger.info(f"Zapier webhook configured: {settings.zapier_configured}")
    logger.info(f"Recorded prompts enabled: {settings.USE_RECORDED_PROMPTS}")

    yield

    await call_coordinator.shutdown()
    await cancel_pending_deliveries()
    try:
        await close_db()
        logger.info("Database connections closed")
    except Exception as e:
        logger.error(f"Error closing database: {str(e)}")


app = FastAPI(
    title="Water Damage Lead System API",
    description="Telnyx call routing, human transfer and Zapier lead delivery",
    version="1.0.0",
    lifespan=lifespan
)

app.add_middleware(RequestLoggingMiddleware)

app.add_middleware(
    CORSMiddleware,
    allow_origins=["*"],
    allow_credentials=True,
    allow_methods=["*"],
    allow_headers=["*"],
)

app.include_router(webhook_router)
app.include_router(call_router)


@app.exception_handler(StarletteHTTPException)
async def http_exception_handler(request: Request, exc: StarletteHTTPException):
    """Operator API errors are returned as {"message": ...}"""
    return JSONResponse(
        status_code=exc.status_code,
        content={"message": str(exc.detail)},
        headers=getattr(exc, "headers", None)
    )


@app.get("/")
async def root():
    return {"message": "Water Damage Lead System API", "status": "running"}


@app.get("/health")
async def health_check():
    return {
        "status": "healthy",
        "timestamp": datetime.now(timezone.utc).isoformat(),
        "environment": settings.ENVIRONMENT,
        "python_version": platform.python_version(),
    }
