import logging
from fastapi import FastAPI, Request
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse
from postgrest.exceptions import APIError
from slowapi import _rate_limit_exceeded_handler
from slowapi.errors import RateLimitExceeded

from app.config import settings
from app.core.rate_limit import limiter
from app.core.realtime import access_cache
from app.database.supabase_client import SupabaseClients
from app.modules.auth import routes as auth_routes
from app.modules.auth.service import token_cache
from app.modules.organizations import routes as organizations_routes
from app.modules.workspaces import routes as workspaces_routes
from app.modules.workspace_modules import routes as workspace_modules_routes
from app.modules.facilities import routes as facilities_routes
from app.modules.departments import routes as departments_routes
from app.modules.roles import routes as roles_routes
from app.modules.module_access import routes as module_access_routes
from app.modules.users import routes as users_routes
from app.modules.training import routes as training_routes
from app.modules.notifications import routes as notifications_routes

logging.basicConfig(
    level=getattr(logging, settings.log_level.upper(), logging.INFO),
    format="%(asctime)s [%(levelname)s] %(name)s: %(message)s",
    datefmt="%Y-%m-%dT%H:%M:%SZ",
)
logger = logging.getLogger(__name__)

# Responses carry user and organization data; never let intermediaries keep them
SECURITY_HEADERS = [
    (b"X-Content-Type-Options", b"nosniff"),
    (b"X-Frame-Options", b"DENY"),
    (b"Referrer-Policy", b"no-referrer"),
    (b"Cache-Control", b"no-store"),
]

ROUTERS = [
    auth_routes.router,
    organizations_routes.router,
    workspaces_routes.router,
    workspace_modules_routes.router,
    facilities_routes.router,
    departments_routes.categories_router,
    departments_routes.router,
    roles_routes.router,
    module_access_routes.router,
    users_routes.router,
    training_routes.router,
    notifications_routes.router,
]

app = FastAPI(title=settings.app_name, debug=settings.debug, redirect_slashes=False)
app.state.limiter = limiter
app.add_exception_handler(RateLimitExceeded, _rate_limit_exceeded_handler)


@app.exception_handler(APIError)
async def database_error_handler(request: Request, exc: APIError):
    """Constraint and row-level-security rejections surface as 400 with the database message"""
    logger.error("Database rejected %s %s: %s (code %s)", request.method, request.url.path, exc.message, exc.code)
    return JSONResponse(status_code=400, content={"detail": exc.message or str(exc)})


@app.exception_handler(Exception)
async def unhandled_error_handler(request: Request, exc: Exception):
    logger.exception("Unhandled error on %s %s", request.method, request.url.path)
    detail = "Internal server error" if settings.is_production else str(exc)
    return JSONResponse(status_code=500, content={"detail": detail})


class SecurityHeadersMiddleware:
    def __init__(self, app):
        self.app = app

    async def __call__(self, scope, receive, send):
        if scope["type"] != "http":
            await self.app(scope, receive, send)
            return

        async def send_with_headers(message):
            if message["type"] == "http.response.start":
                message.setdefault("headers", []).extend(SECURITY_HEADERS)
            await send(message)

        await self.app(scope, receive, send_with_headers)


app.add_middleware(SecurityHeadersMiddleware)
app.add_middleware(
    CORSMiddleware,
    allow_origins=settings.get_cors_origins_list(),
    allow_credentials=True,
    allow_methods=["GET", "POST", "PUT", "PATCH", "DELETE"],
    allow_headers=["Authorization", "Content-Type"],
)

for router in ROUTERS:
    app.include_router(router, prefix=settings.api_prefix)


@app.on_event("startup")
async def startup_event():
    logger.info("%s starting (%s), %d routers under %s",
                settings.app_name, settings.environment, len(ROUTERS), settings.api_prefix)
    if not settings.supabase_service_role_key:
        logger.warning("No service role key configured; user provisioning endpoints will fail")


@app.on_event("shutdown")
async def shutdown_event():
    access_cache.invalidate()
    token_cache.clear()
    SupabaseClients.reset()
    logger.info("%s stopped", settings.app_name)


@app.get("/health")
@limiter.exempt
async def health():
    return {"status": "healthy"}


@app.get("/ready")
@limiter.exempt
async def ready():
    """Ready once a Supabase project is configured"""
    if not settings.supabase_url or not settings.supabase_key:
        return JSONResponse(status_code=503, content={"status": "not ready"})
    return {"status": "ready", "service": settings.app_name}
