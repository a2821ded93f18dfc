"""Authentication middleware — protects all routes except public paths."""
from starlette.middleware.base import BaseHTTPMiddleware
from starlette.requests import Request
from starlette.responses import JSONResponse

from shopsync.services import auth_service

# Paths that never require authentication
PUBLIC_PREFIXES = (
    "/api/auth/register",
    "/api/auth/login",
    "/health",
    "/docs",
    "/openapi.json",
    "/redoc",
)


def _extract_token(request: Request) -> str | None:
    """Bearer token from the Authorization header, else the session cookie"""
    auth_header = request.headers.get("authorization", "")
    if auth_header.lower().startswith("bearer "):
        return auth_header[7:].strip() or None
    return request.cookies.get("session_token")


class AuthMiddleware(BaseHTTPMiddleware):
    async def dispatch(self, request: Request, call_next):
        path = request.url.path

        # Allow public paths through
        if path == "/" or any(path.startswith(p) for p in PUBLIC_PREFIXES):
            return await call_next(request)

        token = _extract_token(request)
        tenant = None
        if token:
            db = request.app.state.store.session()
            try:
                tenant = auth_service.validate_session(db, token)
            finally:
                db.close()

        if not tenant:
            return JSONResponse(
                status_code=401,
                content={"detail": "Authentication required. Please provide a valid token."},
            )

        if not tenant.is_active:
            return JSONResponse(status_code=403, content={"detail": "Account is inactive."})

        # Attach tenant to request state for downstream use
        request.state.tenant = tenant
        request.state.session_token = token
        return await call_next(request)
