from fastapi import APIRouter, Depends, Response
from prepwise.core.config import settings
from prepwise.core.database import UserDB, get_user_db
from prepwise.core.dependencies import require_user
from prepwise.models.user import User, UserCreate, UserLogin, UserOut
from prepwise.services.auth_service import AuthService

router = APIRouter()

@router.post("/signup", response_model=UserOut)
async def signup(user: UserCreate, user_db: UserDB = Depends(get_user_db)):
    return AuthService.signup(user, user_db)

@router.post("/login")
async def login(user: UserLogin, response: Response, user_db: UserDB = Depends(get_user_db)):
    token = AuthService.login(user, user_db)
    AuthService.set_session_cookie(response, token)
    return {"success": True, "token": token}

@router.post("/logout")
async def logout(response: Response):
    response.delete_cookie(settings.SESSION_COOKIE_NAME, path="/")
    return {"success": True}

@router.get("/me", response_model=User)
async def me(user: User = Depends(require_user)):
    return user
