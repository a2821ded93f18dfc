"""Tenant accounts — registration, password hashing, sessions, shop connection"""
import secrets
from datetime import datetime, timedelta

from passlib.context import CryptContext
from sqlalchemy.orm import Session

from shopsync.config import get_settings
from shopsync.exceptions import RegistrationError, TenantNotFoundError
from shopsync.models.tenant import Tenant, TenantSession
from shopsync.utils.logger import log
from shopsync.utils.validators import validate_registration

pwd_context = CryptContext(schemes=["bcrypt"], deprecated="auto")


def hash_password(plain: str) -> str:
    return pwd_context.hash(plain)


def verify_password(plain: str, hashed: str) -> bool:
    return pwd_context.verify(plain, hashed)


def register_tenant(
    db: Session,
    email: str,
    password: str,
    shop_domain: str,
    access_token: str | None = None,
) -> Tenant:
    """Create a tenant. Email and shop domain are unique across tenants."""
    email = (email or "").lower().strip()
    shop_domain = (shop_domain or "").lower().strip()

    errors = validate_registration(email, password, shop_domain)
    if errors:
        raise RegistrationError(errors)

    if db.query(Tenant).filter(Tenant.email == email).first():
        raise RegistrationError(["Email already registered"], conflict=True)
    if db.query(Tenant).filter(Tenant.shop_domain == shop_domain).first():
        raise RegistrationError(["Shop domain already registered"], conflict=True)

    tenant = Tenant(
        email=email,
        password_hash=hash_password(password),
        shop_domain=shop_domain,
        access_token=access_token or None,
    )
    db.add(tenant)
    db.commit()
    db.refresh(tenant)
    log.info(f"New tenant registered: {email}")
    return tenant


def authenticate(db: Session, email: str, password: str) -> Tenant | None:
    """Verify credentials and return the tenant, or None. Inactive tenants are returned too."""
    tenant = db.query(Tenant).filter(Tenant.email == (email or "").lower().strip()).first()
    if not tenant or not verify_password(password, tenant.password_hash):
        return None
    return tenant


def create_session(db: Session, tenant_id: int) -> str:
    """Create a new session token for the tenant."""
    settings = get_settings()
    token = secrets.token_hex(32)
    session = TenantSession(
        tenant_id=tenant_id,
        token=token,
        expires_at=datetime.utcnow() + timedelta(hours=settings.session_duration_hours),
    )
    db.add(session)
    db.commit()
    return token


def validate_session(db: Session, token: str) -> Tenant | None:
    """Return the tenant for a valid, non-expired session token."""
    session = (
        db.query(TenantSession)
        .filter(TenantSession.token == token, TenantSession.expires_at > datetime.utcnow())
        .first()
    )
    if not session:
        return None
    return db.get(Tenant, session.tenant_id)


def delete_session(db: Session, token: str) -> None:
    """Remove a session (logout)."""
    db.query(TenantSession).filter(TenantSession.token == token).delete()
    db.commit()


def cleanup_expired(db: Session) -> int:
    """Delete expired sessions. Returns count removed."""
    count = db.query(TenantSession).filter(TenantSession.expires_at <= datetime.utcnow()).delete()
    db.commit()
    return count


def connect_shop(db: Session, tenant_id: int, access_token: str) -> Tenant:
    """Store (or replace) the tenant's Shopify Admin API access token."""
    tenant = db.get(Tenant, tenant_id)
    if tenant is None:
        raise TenantNotFoundError(tenant_id)
    tenant.access_token = access_token
    db.commit()
    log.info(f"Shopify credentials updated for tenant: {tenant.email}")
    return tenant
