import secrets
from typing import Optional

from fastapi import Depends
from fastapi.security import HTTPAuthorizationCredentials, HTTPBearer
from slowapi import Limiter
from slowapi.util import get_remote_address

from flip_oracle.config import settings
from flip_oracle.core.exceptions import AuthorizationError

limiter = Limiter(key_func=get_remote_address, enabled=settings.rate_limit.enabled)

_bearer = HTTPBearer(auto_error=False)


def resolve_rate_limit() -> str:
    return settings.rate_limit.resolve_requests


def api_rate_limit() -> str:
    return settings.rate_limit.api_requests


def _token_matches(creds: Optional[HTTPAuthorizationCredentials], secret: str) -> bool:
    return creds is not None and secrets.compare_digest(creds.credentials, secret)


def require_cron_secret(creds: Optional[HTTPAuthorizationCredentials] = Depends(_bearer)):
    """Sweep trigger: open unless CRON_SECRET is set, then the bearer token must match."""
    secret = settings.oracle.cron_secret
    if secret and not _token_matches(creds, secret):
        raise AuthorizationError("Unauthorized")
    return True


def require_admin(creds: Optional[HTTPAuthorizationCredentials] = Depends(_bearer)):
    """Admin endpoints: CRON_SECRET is mandatory outside debug mode."""
    secret = settings.oracle.cron_secret
    if not secret:
        if settings.server.debug:
            return True
        raise AuthorizationError("CRON_SECRET required in production")
    if not _token_matches(creds, secret):
        raise AuthorizationError("Unauthorized")
    return True
