import hashlib
import logging
import threading
import time
from supabase import Client
from app.config import settings
from app.modules.auth.schemas import LoginRequest, TokenResponse
from fastapi import HTTPException
from typing import Dict, Any, Optional, Tuple

logger = logging.getLogger(__name__)


class TokenCache:
    """Verified users keyed by a hash of their bearer token, for a short TTL"""

    def __init__(self, ttl_seconds: int, max_size: int):
        self.ttl_seconds = ttl_seconds
        self.max_size = max_size
        self._entries: Dict[str, Tuple[Dict[str, Any], float]] = {}
        self._lock = threading.Lock()

    @staticmethod
    def key(token: str) -> str:
        return hashlib.sha256(token.encode()).hexdigest()

    def get(self, token: str) -> Optional[Dict[str, Any]]:
        key = self.key(token)
        with self._lock:
            entry = self._entries.get(key)
            if entry is None:
                return None
            if time.monotonic() >= entry[1]:
                del self._entries[key]
                return None
            return entry[0]

    def set(self, token: str, user_data: Dict[str, Any]) -> None:
        now = time.monotonic()
        with self._lock:
            if len(self._entries) >= self.max_size:
                expired = [k for k, (_, expires_at) in self._entries.items() if now >= expires_at]
                for k in expired:
                    del self._entries[k]
            if len(self._entries) < self.max_size:
                self._entries[self.key(token)] = (user_data, now + self.ttl_seconds)

    def clear(self) -> None:
        with self._lock:
            self._entries.clear()


token_cache = TokenCache(settings.auth_cache_ttl_seconds, settings.auth_cache_max_size)


class AuthService:
    def __init__(self, supabase: Client, admin: Optional[Client] = None, cache: TokenCache = token_cache):
        self.supabase = supabase
        self.admin = admin or supabase
        self.cache = cache

    def _profile(self, user_id: str) -> Dict[str, Any]:
        result = self.supabase.table("profiles")\
            .select("is_active, force_password_change")\
            .eq("id", user_id)\
            .limit(1)\
            .execute()
        return result.data[0] if result.data else {}

    def login(self, login_data: LoginRequest) -> TokenResponse:
        """Password sign-in; deactivated profiles are refused"""
        try:
            auth_response = self.supabase.auth.sign_in_with_password({
                "email": login_data.email.strip().lower(),
                "password": login_data.password
            })
        except Exception as e:
            logger.warning("Login failed for %s: %s", login_data.email, e)
            raise HTTPException(status_code=401, detail="Invalid email or password")

        if not auth_response.user or not auth_response.session:
            raise HTTPException(status_code=401, detail="Invalid email or password")

        user = auth_response.user
        profile = self._profile(user.id)
        if profile.get("is_active") is False:
            logger.warning("Deactivated user %s attempted to log in", user.id)
            raise HTTPException(status_code=403, detail="This account has been deactivated")

        return TokenResponse(
            access_token=auth_response.session.access_token,
            user_id=user.id,
            email=user.email or login_data.email,
            force_password_change=bool(profile.get("force_password_change", False))
        )

    def get_current_user(self, token: str) -> Dict[str, Any]:
        """Resolve a bearer token to the Supabase user"""
        cached = self.cache.get(token)
        if cached is not None:
            return cached
        try:
            user_response = self.supabase.auth.get_user(jwt=token)
        except Exception as e:
            logger.debug("Token rejected: %s", e)
            raise HTTPException(status_code=401, detail="Invalid or expired token")
        if not user_response or not user_response.user:
            raise HTTPException(status_code=401, detail="Invalid or expired token")

        user = user_response.user
        user_data = {
            "id": user.id,
            "email": user.email,
            "user_metadata": user.user_metadata or {},
        }
        self.cache.set(token, user_data)
        return user_data

    def change_password(self, user_id: str, new_password: str) -> None:
        """Set a new password and lift the first-login password change requirement"""
        if new_password == settings.bulk_upload_temp_password:
            raise HTTPException(status_code=400, detail="Please choose a more secure password than the default")
        try:
            self.admin.auth.admin.update_user_by_id(user_id, {"password": new_password})
        except Exception as e:
            logger.error("Password update failed for %s: %s", user_id, e)
            raise HTTPException(status_code=400, detail=f"Failed to update password: {e}")

        self.supabase.table("profiles")\
            .update({"force_password_change": False})\
            .eq("id", user_id)\
            .execute()
        logger.info("User %s changed their password", user_id)

    def logout(self) -> bool:
        # Tokens expire on their own; sign_out only clears the client session
        try:
            self.supabase.auth.sign_out()
            return True
        except Exception as e:
            logger.debug("Sign out failed: %s", e)
            return False
