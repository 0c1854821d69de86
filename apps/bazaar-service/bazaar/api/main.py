"""
FastAPI app assembly: middleware and router wiring.
"""
import logging
import os

from fastapi import FastAPI, status
from fastapi.middleware.cors import CORSMiddleware
from starlette.requests import Request
from starlette.responses import JSONResponse

# Configure logging
LOG_LEVEL_NAME = os.getenv("LOG_LEVEL", "INFO").upper()
LOG_LEVEL = getattr(logging, LOG_LEVEL_NAME, logging.INFO)
logging.basicConfig(level=LOG_LEVEL)
logger = logging.getLogger(__name__)
logger.setLevel(LOG_LEVEL)
logger.info("app_startup: log_level=%s", LOG_LEVEL_NAME)

from bazaar.api.auth import router as auth_router
from bazaar.api.catalog import router as catalog_router
from bazaar.api.ads import router as ads_router
from bazaar.api.reports import router as reports_router
from bazaar.api.editor import router as editor_router
from bazaar.api.promotion_pricing import router as promotion_pricing_router
from bazaar.api.payments import router as payments_router
from bazaar.api.verification import router as verification_router
from bazaar.api.super_admin import router as super_admin_router
from bazaar.api.audits import router as audits_router
from bazaar.api.users import router as users_router
from bazaar.utils.feature_flags import get_feature_flags
from bazaar.utils.urls import get_app_base_url

# Database schema is managed by Alembic migrations.

app = FastAPI(
    title="ThuluBazaar Marketplace Service",
    description="API for classified ads, moderation, seller verification, promotions and payments.",
    version="1.0.0",
)

# Avoid implicit trailing-slash redirects for predictable URLs
app.router.redirect_slashes = False

origins = [
    "http://localhost",
    "http://localhost:3000",
    "http://localhost:8000",
]
_app_origin = get_app_base_url()
if _app_origin not in origins:
    origins.append(_app_origin)

app.add_middleware(
    CORSMiddleware,
    allow_origins=origins,
    allow_credentials=True,
    allow_methods=["*"],
    allow_headers=["*"],
)

# Writes that must work without a bearer token: sign-in and gateway redirects
GUEST_WRITE_PATHS = frozenset({
    "/auth/login",
    "/auth/register",
    "/editor/auth/login",
    "/payments/callback",
    "/payments/esewa/redirect",
})


# Middleware: enforce read-only for unauthenticated requests
@app.middleware("http")
async def enforce_readonly_for_guests(request: Request, call_next):
    if request.method in ("POST", "PUT", "PATCH", "DELETE"):
        path = (request.url.path or "").rstrip("/") or "/"
        if path not in GUEST_WRITE_PATHS and not request.headers.get("authorization"):
            return JSONResponse(
                {"detail": "Guest mode is read-only. Sign in to perform changes."},
                status_code=status.HTTP_401_UNAUTHORIZED,
            )
    return await call_next(request)


app.include_router(auth_router)
app.include_router(catalog_router)
app.include_router(ads_router)
app.include_router(reports_router)
app.include_router(editor_router)
app.include_router(promotion_pricing_router)
app.include_router(payments_router)
app.include_router(verification_router)
app.include_router(super_admin_router)
app.include_router(audits_router)
app.include_router(users_router)


@app.get("/features")
def feature_flags():
    flags = get_feature_flags()
    return {
        "khaltiEnabled": flags["feature_khalti_enabled"],
        "esewaEnabled": flags["feature_esewa_enabled"],
        "promotionsEnabled": flags["feature_promotions_enabled"],
    }


@app.get("/health")
def health_check():
    return {"status": "ok", "service": "bazaar-service"}
