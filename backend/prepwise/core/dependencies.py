from typing import Optional
from fastapi import Depends, HTTPException, Request
from starlette.requests import HTTPConnection
from prepwise.core.config import settings
from prepwise.core.database import UserDB, get_user_db
from prepwise.models.user import User
from prepwise.services.auth_service import AuthService

def get_session_token(conn: HTTPConnection, token: Optional[str] = None) -> Optional[str]:
    """Session token from an explicit value, the session cookie or a bearer header"""
    if token:
        return token
    cookie = conn.cookies.get(settings.SESSION_COOKIE_NAME)
    if cookie:
        return cookie
    auth_header = conn.headers.get("authorization", "")
    if auth_header.lower().startswith("bearer "):
        return auth_header[7:]
    return None

def get_current_user(request: Request, user_db: UserDB = Depends(get_user_db)) -> Optional[User]:
    return AuthService.get_user(get_session_token(request), user_db)

def is_authenticated(request: Request, user_db: UserDB = Depends(get_user_db)) -> bool:
    return get_current_user(request, user_db) is not None

def require_user(user: Optional[User] = Depends(get_current_user)) -> User:
    if user is None:
        raise HTTPException(status_code=401, detail="Not authenticated")
    return user
