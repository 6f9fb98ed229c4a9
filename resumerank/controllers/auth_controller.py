from fastapi import APIRouter, Depends
from sqlalchemy.ext.asyncio import AsyncSession

import resumerank.schemas.user_schema as user_schema
from resumerank.db.database import get_db
from resumerank.services.auth.AuthInterface import IAuthService
from resumerank.services.auth.auth_service import AuthService, get_current_user, oauth2_scheme

router = APIRouter()
auth_service: IAuthService = AuthService()


@router.post("/login")
async def login(data: user_schema.UserLogin, db: AsyncSession = Depends(get_db)):
    return await auth_service.login(data.email, data.password, db)


@router.post("/register", status_code=201)
async def register(data: user_schema.UserRegister, db: AsyncSession = Depends(get_db)):
    return {"user_id": await auth_service.signup(data.model_dump(), db)}


@router.get("/me", response_model=user_schema.UserPublic)
async def read_current_user(current_user=Depends(get_current_user)):
    """Get current user information"""
    return current_user


@router.post("/logout")
async def logout(
    token: str = Depends(oauth2_scheme),
    db: AsyncSession = Depends(get_db),
    current_user=Depends(get_current_user)
):
    return await auth_service.logout(token, db)
