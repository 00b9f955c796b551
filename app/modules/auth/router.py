from fastapi import APIRouter, Depends
from fastapi.security import OAuth2PasswordRequestForm

from app.dependencies.dbDependecies import db_dependency
from app.modules.auth.service import AuthService
from app.modules.auth.dependencies import get_current_user, require_admin
from app.modules.auth.models import User
from app.modules.auth.schemas import UserCreate, UserOut, TokenResponse, AuthContext

auth_router = APIRouter()


@auth_router.post("/login", response_model=TokenResponse)
async def login(db: db_dependency, form_data: OAuth2PasswordRequestForm = Depends()):
    """
    Log in with email (as username) and password.
    """
    auth_service = AuthService(db)
    return auth_service.login(form_data.username, form_data.password)


@auth_router.get("/me", response_model=UserOut)
async def get_me(current_user: User = Depends(get_current_user)):
    return current_user


@auth_router.post("/users", response_model=UserOut, status_code=201)
async def create_user(
    user_data: UserCreate,
    db: db_dependency,
    auth_context: AuthContext = Depends(require_admin())
):
    """
    Create a staff or admin account. Admin only.
    """
    return AuthService(db).create_user(user_data)
