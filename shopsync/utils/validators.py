"""
Input validation for tenant registration and login
"""
import re
from typing import List, Optional

from shopsync.config import get_settings

EMAIL_RE = re.compile(r"^[^\s@]+@[^\s@]+\.[^\s@]+$")
SHOP_DOMAIN_RE = re.compile(r"^[a-zA-Z0-9-]+\.myshopify\.com$")


def is_valid_email(email: Optional[str]) -> bool:
    return bool(email) and EMAIL_RE.match(email) is not None


def is_valid_password(password: Optional[str]) -> bool:
    return bool(password) and len(password) >= get_settings().password_min_length


def is_valid_shop_domain(domain: Optional[str]) -> bool:
    """Shop domains must be the store's *.myshopify.com host"""
    return bool(domain) and SHOP_DOMAIN_RE.match(domain) is not None


def validate_registration(email: Optional[str], password: Optional[str], shop_domain: Optional[str]) -> List[str]:
    """Return a list of validation errors (empty when valid)."""
    errors = []
    if not is_valid_email(email):
        errors.append("Valid email is required")
    if not is_valid_password(password):
        errors.append(
            f"Password must be at least {get_settings().password_min_length} characters"
        )
    if not is_valid_shop_domain(shop_domain):
        errors.append("Valid Shopify domain is required (e.g., your-store.myshopify.com)")
    return errors


def validate_login(email: Optional[str], password: Optional[str]) -> List[str]:
    errors = []
    if not is_valid_email(email):
        errors.append("Valid email is required")
    if not password:
        errors.append("Password is required")
    return errors
