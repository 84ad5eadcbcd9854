import hmac
import logging
from datetime import datetime, timedelta, timezone
from typing import Optional

import jwt
from fastapi import APIRouter, Header, HTTPException, Request

from webapp.schemas import LoginRequest

logger = logging.getLogger(__name__)

ALGORITHM = "HS256"
ADMIN_ROLE = "admin"

router = APIRouter(prefix="/auth", tags=["auth"])


class AdminGuard:
    """Проверка прав администратора. Настройки передаются при создании."""

    def __init__(self, settings):
        self.settings = settings

    def check_credentials(self, username: str, password: str) -> bool:
        expected_user = self.settings.admin_username
        expected_password = self.settings.admin_password
        if not expected_user or not expected_password:
            logger.warning("Admin credentials are not configured")
            return False
        return hmac.compare_digest(username, expected_user) and hmac.compare_digest(password, expected_password)

    def issue_token(self, username: str) -> str:
        expires = datetime.now(timezone.utc) + timedelta(minutes=self.settings.jwt_expires_minutes)
        payload = {"role": ADMIN_ROLE, "username": username, "exp": expires}
        return jwt.encode(payload, self.settings.jwt_secret, algorithm=ALGORITHM)

    def decode(self, token: str) -> Optional[dict]:
        if not self.settings.jwt_secret:
            logger.warning("JWT_SECRET not configured, cannot validate tokens")
            return None
        try:
            return jwt.decode(token, self.settings.jwt_secret, algorithms=[ALGORITHM])
        except jwt.ExpiredSignatureError:
            logger.info("JWT token has expired")
            return None
        except jwt.InvalidTokenError as e:
            logger.info("Invalid JWT token: %s", type(e).__name__)
            return None

    def is_admin(self, claims: Optional[dict]) -> bool:
        return bool(claims) and claims.get("role") == ADMIN_ROLE


async def require_admin(request: Request, authorization: Optional[str] = Header(default=None)) -> dict:
    """Dependency: пропускает только администратора"""
    guard: AdminGuard = request.app.state.admin_guard

    token = (authorization or "").replace("Bearer ", "", 1).strip()
    if not token:
        raise HTTPException(status_code=401, detail="Access Denied: No token provided")

    claims = guard.decode(token)
    if claims is None:
        raise HTTPException(status_code=401, detail="Invalid or expired token")
    if not guard.is_admin(claims):
        raise HTTPException(status_code=403, detail="Forbidden: Admins only")
    return claims


@router.post("/admin-login")
async def admin_login(payload: LoginRequest, request: Request):
    """Вход администратора по логину и паролю из .env"""
    if not payload.username or not payload.password:
        raise HTTPException(status_code=400, detail="Username and password required")

    guard: AdminGuard = request.app.state.admin_guard
    if not guard.check_credentials(payload.username, payload.password):
        raise HTTPException(status_code=401, detail="Invalid credentials")

    return {
        "success": True,
        "message": "Admin logged in successfully",
        "token": guard.issue_token(payload.username),
    }


@router.post("/logout")
async def admin_logout():
    """JWT без состояния, клиент просто забывает токен"""
    return {"success": True, "message": "Admin logged out successfully"}
