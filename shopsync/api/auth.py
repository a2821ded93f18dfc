"""Authentication API — register, login, logout, current tenant."""
from fastapi import APIRouter, Depends, HTTPException, Request
from fastapi.responses import JSONResponse
from pydantic import BaseModel
from sqlalchemy.orm import Session

from shopsync.config import get_settings
from shopsync.exceptions import RegistrationError
from shopsync.models.base import get_db
from shopsync.models.tenant import Tenant
from shopsync.services import auth_service
from shopsync.utils.logger import log
from shopsync.utils.validators import validate_login

router = APIRouter(prefix="/api/auth", tags=["auth"])


def require_tenant(request: Request) -> Tenant:
    """Dependency: raise 401 if no authenticated tenant on request."""
    tenant = getattr(request.state, "tenant", None)
    if not tenant:
        raise HTTPException(status_code=401, detail="Not authenticated")
    return tenant


# ── Schemas ──────────────────────────────────────────────

class RegisterRequest(BaseModel):
    email: str
    password: str
    shopDomain: str
    accessToken: str | None = None


class LoginRequest(BaseModel):
    email: str
    password: str


def _tenant_out(t: Tenant) -> dict:
    return {
        "id": t.id,
        "email": t.email,
        "shopDomain": t.shop_domain,
        "isActive": t.is_active,
        "isConnected": bool(t.access_token),
        "createdAt": t.created_at.isoformat() if t.created_at else None,
    }


def _with_session_cookie(response: JSONResponse, token: str) -> JSONResponse:
    settings = get_settings()
    response.set_cookie(
        key="session_token",
        value=token,
        httponly=True,
        secure=settings.environment != "development",
        samesite="lax",
        max_age=60 * 60 * settings.session_duration_hours,
        path="/",
    )
    return response


# ── Auth endpoints ───────────────────────────────────────

@router.post("/register")
async def register(body: RegisterRequest, db: Session = Depends(get_db)):
    """Register a new tenant (Shopify store owner) and start a session."""
    try:
        tenant = auth_service.register_tenant(
            db, body.email, body.password, body.shopDomain, body.accessToken
        )
    except RegistrationError as e:
        raise HTTPException(status_code=409 if e.conflict else 400, detail={"errors": e.errors})

    token = auth_service.create_session(db, tenant.id)
    response = JSONResponse(
        status_code=201,
        content={"message": "Registration successful", "token": token, "tenant": _tenant_out(tenant)},
    )
    return _with_session_cookie(response, token)


@router.post("/login")
async def login(body: LoginRequest, db: Session = Depends(get_db)):
    """Authenticate and return a session token (also set as a cookie)."""
    errors = validate_login(body.email, body.password)
    if errors:
        raise HTTPException(status_code=400, detail={"errors": errors})

    tenant = auth_service.authenticate(db, body.email, body.password)
    if not tenant:
        raise HTTPException(status_code=401, detail="Invalid email or password")
    if not tenant.is_active:
        raise HTTPException(status_code=403, detail="Account is inactive")

    token = auth_service.create_session(db, tenant.id)
    log.info(f"Tenant logged in: {tenant.email}")
    response = JSONResponse(
        content={"message": "Login successful", "token": token, "tenant": _tenant_out(tenant)}
    )
    return _with_session_cookie(response, token)


@router.post("/logout")
async def logout(request: Request, db: Session = Depends(get_db)):
    """Clear session and cookie."""
    token = getattr(request.state, "session_token", None)
    if token:
        auth_service.delete_session(db, token)
    response = JSONResponse(content={"success": True})
    response.delete_cookie("session_token", path="/")
    return response


@router.get("/me")
async def me(tenant: Tenant = Depends(require_tenant)):
    return {"tenant": _tenant_out(tenant)}
