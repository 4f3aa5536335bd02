import hashlib
import time
from supabase import Client
from typing import Dict, Any, Optional
import logging

from app.core.exceptions import Unauthorized

logger = logging.getLogger(__name__)

# token digest -> (principal, expiry). The sync client re-reads every few
# seconds per domain, so each poll would otherwise cost one Auth round trip.
_PRINCIPAL_CACHE: Dict[str, tuple] = {}
PRINCIPAL_TTL_SEC = 60
PRINCIPAL_CACHE_MAX = 500


def clear_auth_cache() -> None:
    _PRINCIPAL_CACHE.clear()


def _digest(token: str) -> str:
    return hashlib.sha256(token.encode()).hexdigest()


def _cached_principal(key: str, now: float) -> Optional[Dict[str, Any]]:
    entry = _PRINCIPAL_CACHE.get(key)
    if entry is None:
        return None
    principal, expiry = entry
    if now >= expiry:
        del _PRINCIPAL_CACHE[key]
        return None
    return principal


def _remember_principal(key: str, principal: Dict[str, Any], now: float) -> None:
    if len(_PRINCIPAL_CACHE) >= PRINCIPAL_CACHE_MAX:
        for stale in [k for k, (_, expiry) in _PRINCIPAL_CACHE.items() if expiry <= now]:
            del _PRINCIPAL_CACHE[stale]
    if len(_PRINCIPAL_CACHE) < PRINCIPAL_CACHE_MAX:
        _PRINCIPAL_CACHE[key] = (principal, now + PRINCIPAL_TTL_SEC)


class AuthService:
    """Resolves a bearer token to a principal. Sign-up and sign-in happen against Supabase Auth directly."""

    def __init__(self, supabase: Client):
        self.supabase = supabase

    def get_current_user(self, token: str) -> Dict[str, Any]:
        key = _digest(token)
        now = time.monotonic()
        principal = _cached_principal(key, now)
        if principal is not None:
            return principal

        try:
            response = self.supabase.auth.get_user(jwt=token)
        except Exception as e:
            message = str(e).lower()
            logger.debug(f"Token lookup rejected: {e}")
            if "jwt" in message or "expired" in message or "invalid" in message:
                raise Unauthorized("Invalid or expired token")
            raise Unauthorized("Authentication failed")

        if not response or not response.user:
            raise Unauthorized("Invalid or expired token")
        user = response.user
        principal = {
            "id": user.id,
            "email": user.email,
            "user_metadata": user.user_metadata or {},
        }
        _remember_principal(key, principal, now)
        return principal
