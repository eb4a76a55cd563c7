# backend/telecloud/main.py

import logging

from fastapi import FastAPI, Request
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse
from slowapi import Limiter, _rate_limit_exceeded_handler
from slowapi.util import get_remote_address
from slowapi.errors import RateLimitExceeded

from telecloud.core.config import CORS_EXTRA_ORIGINS, ENVIRONMENT, LOG_LEVEL, RATE_LIMIT_ENABLED
from telecloud.core.exceptions import TeleCloudError

from telecloud.api.v1 import auth as auth_router_v1
from telecloud.api.v1 import folders as folders_router_v1
from telecloud.api.v1 import files as files_router_v1
from telecloud.api.v1 import admin as admin_router_v1
from telecloud.api.v1 import account as account_router_v1

logging.basicConfig(
    level=LOG_LEVEL,
    format="%(asctime)s %(levelname)s [%(name)s] %(message)s",
)
logger = logging.getLogger(__name__)

app = FastAPI(
    title="TeleCloud API",
    version="0.1.0",
    description="Dosya içeriklerini Telegram'da, metadata'yı Firestore'da tutan kişisel bulut depolama."
)

# --- Rate limit (router limiter'ları bu state üzerinden çalışır) ---
limiter = Limiter(key_func=get_remote_address, enabled=RATE_LIMIT_ENABLED)
app.state.limiter = limiter
app.add_exception_handler(RateLimitExceeded, _rate_limit_exceeded_handler)


# --- Uygulama Hataları ---
async def telecloud_error_handler(request: Request, exc: TeleCloudError):
    """Servis katmanındaki hataları tutarlı bir JSON gövdesine çevirir."""
    if exc.status_code >= 500:
        logger.error("%s %s -> %s: %s", request.method, request.url.path, exc.kind, exc.message)
    return JSONResponse(
        status_code=exc.status_code,
        content={"error": exc.kind, "detail": exc.message},
        headers=exc.headers,
    )

app.add_exception_handler(TeleCloudError, telecloud_error_handler)

# --- CORS ---
origins = ["http://localhost:5173", "http://localhost:3000"]
if CORS_EXTRA_ORIGINS:
    origins.extend([origin.strip() for origin in CORS_EXTRA_ORIGINS.split(",") if origin.strip()])

SECURITY_HEADERS = {
    "X-Frame-Options": "DENY",
    "X-Content-Type-Options": "nosniff",
    "Referrer-Policy": "strict-origin-when-cross-origin",
}
# HSTS sadece HTTPS arkasında (production) anlamlı
if ENVIRONMENT == "production":
    SECURITY_HEADERS["Strict-Transport-Security"] = "max-age=31536000; includeSubDomains"


@app.middleware("http")
async def apply_security_headers(request: Request, call_next):
    response = await call_next(request)
    for header, value in SECURITY_HEADERS.items():
        response.headers[header] = value
    return response


app.add_middleware(
    CORSMiddleware,
    allow_origins=origins,
    allow_credentials=True,
    allow_methods=["GET", "POST", "DELETE", "OPTIONS", "PATCH", "HEAD"],
    allow_headers=["Authorization", "Content-Type", "Range", "Accept", "Origin"],
    # Video oynatıcılar kısmi içerik başlıklarını okuyabilmeli
    expose_headers=["Content-Length", "Content-Type", "Content-Disposition", "Content-Range", "Accept-Ranges", "ETag"],
    max_age=3600,
)

# --- v1 router'ları ---
for module, prefix, tag in (
    (auth_router_v1, "auth", "Authentication"),
    (folders_router_v1, "folders", "Folders"),
    (files_router_v1, "files", "Files"),
    (admin_router_v1, "admin", "Admin"),
    (account_router_v1, "account", "Account"),
):
    app.include_router(module.router, prefix=f"/api/v1/{prefix}", tags=[f"V1 - {tag}"])


@app.get("/", tags=["Health Check"])
def health_check():
    return {"status": "ok", "service": "telecloud", "environment": ENVIRONMENT}
