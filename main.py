"""
YourTube backend - payment, download and comment endpoints
Entitlement, quota and moderation rules live in services/; routers only translate HTTP.
"""

from pathlib import Path
import logging
import traceback

from fastapi import FastAPI
from fastapi.middleware.cors import CORSMiddleware
from starlette.middleware.base import BaseHTTPMiddleware
from starlette.responses import JSONResponse

from routers.payment_router import payment_router
from routers.download_router import download_router
from routers.comment_router import comment_router
from database import init_db
from config.settings import settings

# Logging setup - write ALL events to /logs/app.log
LOGS_DIR = Path("./logs")
LOGS_DIR.mkdir(exist_ok=True)
logging.basicConfig(
    level=logging.INFO,
    format='%(asctime)s - %(name)s - %(levelname)s - %(message)s',
    handlers=[
        logging.FileHandler(LOGS_DIR / "app.log"),
        logging.StreamHandler()
    ]
)
logger = logging.getLogger(__name__)

app = FastAPI(title="YourTube API")


# Uncaught exception middleware - logs all unhandled exceptions and returns 500
class UncaughtExceptionMiddleware(BaseHTTPMiddleware):
    async def dispatch(self, request, call_next):
        try:
            return await call_next(request)
        except Exception as e:
            logger.error(f"Uncaught exception: {e}\n{traceback.format_exc()}")
            return JSONResponse(
                status_code=500,
                content={"ok": False, "data": {}, "error": "INTERNAL_ERROR", "message": "Internal Server Error"}
            )


app.add_middleware(UncaughtExceptionMiddleware)

# CORS MUST be near the bottom
app.add_middleware(
    CORSMiddleware,
    allow_origins=[settings.frontend_url],
    allow_credentials=True,
    allow_methods=["*"],
    allow_headers=["*"],
)


# Optional collaborators: absence switches the matching feature to its degraded mode
OPTIONAL_KEYS = {
    "RAZORPAY_KEY_ID": settings.razorpay_key_id,
    "RAZORPAY_KEY_SECRET": settings.razorpay_key_secret,
    "SMTP_HOST": settings.smtp_host,
    "SMTP_USER": settings.smtp_user,
    "SMTP_PASS": settings.smtp_pass,
}


@app.on_event("startup")
async def check_env_keys_on_startup():
    """Report missing collaborator credentials on startup (non-fatal warning)"""
    missing = [key for key, value in OPTIONAL_KEYS.items() if not value]
    if missing:
        logger.warning(f"Startup check: Missing environment variables: {', '.join(missing)}")
        if not (settings.razorpay_key_id and settings.razorpay_key_secret):
            logger.warning("Razorpay keys missing - orders will be created in demo mode")
    else:
        logger.info("Startup check: All collaborator credentials are set")


# Initialize database on startup
@app.on_event("startup")
async def initialize_database():
    """Create all tables."""
    try:
        await init_db()
        logger.info("Database initialized successfully")
    except Exception as e:
        logger.error(f"Database initialization failed: {e}")
        raise


@app.get("/")
async def home():
    return {"ok": True, "status": "YourTube backend running"}


app.include_router(payment_router)
app.include_router(download_router)
app.include_router(comment_router)

if __name__ == "__main__":
    import uvicorn
    uvicorn.run(app, host="0.0.0.0", port=8000)
