# src/cmscrm/app.py
import logging
import mimetypes
from contextlib import asynccontextmanager

from fastapi import Depends, FastAPI
from fastapi.middleware.cors import CORSMiddleware
from fastapi.middleware.gzip import GZipMiddleware
from fastapi.staticfiles import StaticFiles
from slowapi.middleware import SlowAPIMiddleware

from src.cmscrm.config import settings
from src.cmscrm import models  # noqa: F401  (register tables on Base.metadata)
from src.cmscrm.middleware.security_headers import security_headers_middleware
from src.cmscrm.monitoring import ApiMetrics, api_metrics_middleware, get_metrics
from src.cmscrm.utils.database import ping_database
from src.cmscrm.utils.error_handler import register_exception_handlers
from src.cmscrm.utils.media import UPLOADS_URL, get_upload_root
from src.cmscrm.utils.rate_limit import limiter
from src.cmscrm.utils.timezone import now_iso

from src.cmscrm.routes.activity_logs_api import router as activity_logs_router
from src.cmscrm.routes.auth_api import router as auth_router
from src.cmscrm.routes.navigation_api import router as navigation_router
from src.cmscrm.routes.pages_api import router as pages_router
from src.cmscrm.routes.roles_api import router as roles_router
from src.cmscrm.routes.users_api import router as users_router

# ----------------------------------------------------------
# LOGGING
# ----------------------------------------------------------
logging.basicConfig(
    level=getattr(logging, settings.LOG_LEVEL.upper(), logging.INFO),
    format="%(asctime)s | %(levelname)s | %(name)s | %(message)s",
)
logger = logging.getLogger(__name__)

# SVG icons must be served as images
mimetypes.add_type("image/svg+xml", ".svg")


@asynccontextmanager
async def lifespan(app: FastAPI):
    try:
        await ping_database()
        logger.info("Database connection established")
    except Exception:
        logger.exception("Database is not reachable at startup")
        raise
    logger.info("%s v%s started (%s)", settings.APP_NAME, settings.APP_VERSION, settings.APP_ENV)
    yield
    logger.info("Shutting down %s", settings.APP_NAME)


app = FastAPI(title=settings.APP_NAME, version=settings.APP_VERSION, lifespan=lifespan)

# one recorder per app instance; handlers reach it through get_metrics
app.state.metrics = ApiMetrics()
app.state.limiter = limiter

# ----------------------------------------------------------
# MIDDLEWARE (last added runs first)
# ----------------------------------------------------------
app.middleware("http")(api_metrics_middleware)
app.middleware("http")(security_headers_middleware)
app.add_middleware(SlowAPIMiddleware)
app.add_middleware(GZipMiddleware, minimum_size=1000)
app.add_middleware(
    CORSMiddleware,
    allow_origins=settings.cors_origins,
    allow_credentials=True,
    allow_methods=["*"],
    allow_headers=["*"],
)

# ----------------------------------------------------------
# STATIC UPLOADS
# ----------------------------------------------------------
app.mount(UPLOADS_URL, StaticFiles(directory=str(get_upload_root())), name="uploads")

# ----------------------------------------------------------
# ERROR HANDLERS
# ----------------------------------------------------------
register_exception_handlers(app)

# ----------------------------------------------------------
# ROUTERS
# ----------------------------------------------------------
app.include_router(auth_router)
app.include_router(pages_router)
app.include_router(users_router)
app.include_router(roles_router)
app.include_router(activity_logs_router)
app.include_router(navigation_router)


@app.get("/health", tags=["System"])
async def health(metrics: ApiMetrics = Depends(get_metrics)):
    return {
        "success": True,
        "message": "Server is running",
        "timestamp": now_iso(),
        "environment": settings.APP_ENV,
        "data": {"api_calls": metrics.api_calls},
    }


@app.get("/", tags=["System"])
async def root():
    return {
        "success": True,
        "message": f"{settings.APP_NAME} is running",
        "data": {
            "name": settings.APP_NAME,
            "version": settings.APP_VERSION,
            "environment": settings.APP_ENV,
            "endpoints": {
                "health": "/health",
                "auth": "/api/auth",
                "pages": "/api/pages",
                "users": "/api/users",
                "roles": "/api/roles",
                "navigation": "/api/navigation",
                "activity_logs": "/api/activity-logs",
                "uploads": UPLOADS_URL,
            },
        },
    }
