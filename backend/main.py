import logging
import os

from dotenv import load_dotenv
from fastapi import FastAPI
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse
from starlette.requests import HTTPConnection

load_dotenv()

from config import APP_NAME, APP_VERSION, LOG_LEVEL
from core.errors import AnalystTrackError

logging.basicConfig(
    level=getattr(logging, LOG_LEVEL, logging.INFO),
    format="%(asctime)s %(levelname)s [%(name)s] %(message)s",
)
logger = logging.getLogger(__name__)

app = FastAPI(
    title=f"{APP_NAME} API",
    description="Stock price predictions by analysts, ranked by track record",
    version=APP_VERSION
)

# Read CORS configuration from environment
cors_origins = os.getenv("CORS_ALLOW_ORIGINS", "*")
if cors_origins.strip() == "*":
    allow_origins = ["*"]
else:
    allow_origins = [o.strip() for o in cors_origins.split(",") if o.strip()]

# Only allow credentials when explicit origins are configured
allow_credentials = False
if allow_origins != ["*"]:
    allow_credentials = os.getenv("CORS_ALLOW_CREDENTIALS", "false").lower() in ("1", "true", "yes")

app.add_middleware(
    CORSMiddleware,
    allow_origins=allow_origins,
    allow_credentials=allow_credentials,
    allow_methods=["*"],
    allow_headers=["*"],
)


@app.exception_handler(AnalystTrackError)
async def analysttrack_error_handler(request: HTTPConnection, exc: AnalystTrackError):
    """Domain errors are scoped to the request that raised them"""
    if exc.status_code >= 500:
        logger.error(f"{request.url.path} failed: {exc.message}")
    return JSONResponse(status_code=exc.status_code, content={"detail": exc.message})


# Import routers
from routes.auth_routes import router as auth_router
from routes.analyst_routes import router as analyst_router
from routes.prediction_routes import router as prediction_router
from routes.shell_routes import router as shell_router

app.include_router(auth_router)
app.include_router(analyst_router)
app.include_router(prediction_router)
app.include_router(shell_router)


@app.on_event("startup")
async def startup_event():
    """Initialize database indexes on startup"""
    from db.mongo import ensure_indexes
    ensure_indexes()
    logger.info("Database indexes initialized")


@app.get("/")
def root():
    return {
        "status": "ok",
        "service": APP_NAME,
        "version": APP_VERSION,
        "features": [
            "Analyst directory ranked by accuracy",
            "Live prediction ledger",
            "Atomic prediction submission",
        ]
    }


@app.get("/health")
def health_check():
    """Health check for load balancers"""
    from core.websocket_manager import manager
    from db.mongo import ping
    try:
        ping()
        return {"status": "healthy", "database": "connected", "shell_connections": manager.get_connection_count()}
    except Exception as e:
        return {"status": "unhealthy", "database": "disconnected", "error": str(e)}
