"""
Shared slowapi limiter. Routes that need a tighter limit than the default
decorate themselves with limiter.limit(...) and take a `request` argument.
"""

import hashlib

from fastapi import Request
from slowapi import Limiter
from slowapi.util import get_remote_address

from app.config import settings


def user_or_remote_address(request: Request) -> str:
    """Key by bearer token when present so limits follow the admin, not the proxy"""
    auth_header = request.headers.get("authorization", "")
    if auth_header.lower().startswith("bearer "):
        token = auth_header[7:].strip()
        if token:
            return "token:" + hashlib.sha256(token.encode()).hexdigest()[:32]
    return get_remote_address(request)


limiter = Limiter(key_func=user_or_remote_address, default_limits=[settings.rate_limit])
