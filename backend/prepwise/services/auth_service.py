import logging
from datetime import datetime, timedelta, timezone
from typing import Optional

import jwt
from fastapi import HTTPException, Response
from passlib.context import CryptContext

from prepwise.core.config import settings
from prepwise.core.database import UserDB
from prepwise.models.user import User, UserCreate, UserLogin

logger = logging.getLogger(__name__)

pwd_context = CryptContext(schemes=["bcrypt"], deprecated="auto")

class AuthService:

    @staticmethod
    def hash_password(password: str) -> str:
        return pwd_context.hash(password)

    @staticmethod
    def verify_password(plain_password: str, hashed_password: str) -> bool:
        return pwd_context.verify(plain_password, hashed_password)

    @staticmethod
    def create_token(user_id: str, email: str) -> str:
        payload = {
            "user_id": user_id,
            "email": email,
            "exp": datetime.now(timezone.utc) + timedelta(seconds=settings.SESSION_MAX_AGE)
        }
        return jwt.encode(payload, settings.JWT_SECRET, algorithm=settings.JWT_ALGORITHM)

    @staticmethod
    def decode_token(token: str) -> Optional[str]:
        """Return the user id carried by a session token, or None if it is not valid"""
        try:
            payload = jwt.decode(token.replace("Bearer ", ""), settings.JWT_SECRET,
                                 algorithms=[settings.JWT_ALGORITHM])
        except jwt.ExpiredSignatureError:
            logger.info("[AUTH] Session token expired")
            return None
        except jwt.PyJWTError as e:
            logger.warning(f"❌ [AUTH] Invalid session token: {e}")
            return None
        return payload.get("user_id")

    @staticmethod
    def set_session_cookie(response: Response, token: str) -> None:
        response.set_cookie(
            settings.SESSION_COOKIE_NAME,
            token,
            max_age=settings.SESSION_MAX_AGE,
            httponly=True,
            path="/",
            samesite="lax",
            secure=settings.COOKIE_SECURE,
        )

    @staticmethod
    def signup(user: UserCreate, user_db: UserDB) -> dict:
        if user_db.get_user_by_email(user.email):
            raise HTTPException(status_code=400, detail="User already exists")

        hashed_pw = AuthService.hash_password(user.password)
        user_doc = user_db.create_user(user.name, user.email, hashed_pw)
        token = AuthService.create_token(str(user_doc["_id"]), user.email)
        logger.info(f"✅ [AUTH] Created user {user.email}")

        return {
            "id": str(user_doc["_id"]),
            "name": user_doc["name"],
            "email": user_doc["email"],
            "created_at": user_doc["created_at"],
            "token": token
        }

    @staticmethod
    def login(user: UserLogin, user_db: UserDB) -> str:
        user_doc = user_db.get_user_by_email(user.email)
        if not user_doc:
            raise HTTPException(status_code=404, detail="User does not exist. Create an account instead.")

        if not AuthService.verify_password(user.password, user_doc["hashed_password"]):
            raise HTTPException(status_code=401, detail="Invalid credentials")

        return AuthService.create_token(str(user_doc["_id"]), user.email)

    @staticmethod
    def get_user(token: Optional[str], user_db: UserDB) -> Optional[User]:
        if not token:
            return None
        user_id = AuthService.decode_token(token)
        if not user_id:
            return None

        user_doc = user_db.get_user_by_id(user_id)
        if not user_doc:
            return None
        return User(id=str(user_doc["_id"]), name=user_doc["name"], email=user_doc["email"])
