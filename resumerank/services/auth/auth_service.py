import logging
import secrets

from fastapi import HTTPException, status, Depends
from fastapi.security import OAuth2PasswordBearer, HTTPBearer, HTTPAuthorizationCredentials
from sqlalchemy.ext.asyncio import AsyncSession
from sqlalchemy.future import select

from resumerank.core.config import settings
from resumerank.core.security import verify_password, get_password_hash, create_access_token, decode_token
from resumerank.core.validators import InputValidator
from resumerank.db.database import get_db
from resumerank.models.revoked_token import RevokedToken
from resumerank.repositories import user_repo
from resumerank.services.auth.AuthInterface import IAuthService

logger = logging.getLogger(__name__)

oauth2_scheme = OAuth2PasswordBearer(tokenUrl="auth/login")
service_bearer = HTTPBearer(auto_error=False)


class AuthService(IAuthService):
    async def login(self, email: str, password: str, db):
        email = InputValidator.validate_email(email)

        if not password or not password.strip():
            raise HTTPException(status_code=400, detail="Password is required")

        user = await user_repo.get_user_by_email(db, email)
        if not user or not verify_password(password, user.hashed_password):
            logger.info(f"Login failed for {email}")
            raise HTTPException(
                status_code=status.HTTP_401_UNAUTHORIZED, detail="Invalid credentials")

        token = create_access_token({"sub": user.email, "user_id": user.id})
        return {
            "access_token": token,
            "token_type": "bearer",
            "user_id": user.id,
            "is_admin": user.is_admin,
        }

    async def signup(self, data: dict, db):
        email = InputValidator.validate_email(data.get("email", ""))
        password = InputValidator.validate_password_strength(data.get("password", ""))
        full_name = data.get("full_name")
        if full_name:
            full_name = InputValidator.validate_name(full_name, field="Full name")
        company_name = data.get("company_name")
        if company_name:
            company_name = InputValidator.sanitize_string(company_name, max_length=200)

        if await user_repo.get_user_by_email(db, email):
            raise HTTPException(
                status_code=status.HTTP_400_BAD_REQUEST, detail="User already exists")

        user = await user_repo.create_user(
            db,
            email=email,
            hashed_password=get_password_hash(password),
            full_name=full_name,
            company_name=company_name,
            ai_credits=settings.DEFAULT_AI_CREDITS,
        )
        logger.info(f"Registered user {user.id}")
        return user.id

    async def logout(self, token: str, db):
        payload = decode_token(token) if token else None
        jti = payload.get("jti") if payload else None
        if jti:
            db.add(RevokedToken(jti=jti))
            await db.commit()
        return {"message": "Successfully logged out."}


async def resolve_user_from_token(token: str, db: AsyncSession):
    """The user a bearer token belongs to, or None when it is invalid or revoked."""
    payload = decode_token(token) if token else None
    if not payload or "user_id" not in payload:
        return None
    jti = payload.get("jti")
    if jti:
        result = await db.execute(select(RevokedToken).where(RevokedToken.jti == jti))
        if result.scalar_one_or_none():
            return None
    return await user_repo.get_user_by_id(db, payload["user_id"])


async def get_current_user(
    token: str = Depends(oauth2_scheme),
    db: AsyncSession = Depends(get_db)
):
    user = await resolve_user_from_token(token, db)
    if not user:
        raise HTTPException(
            status_code=401, detail="Invalid authentication credentials")
    return user


def admin_required(current_user=Depends(get_current_user)):
    if not current_user.is_admin:
        raise HTTPException(status_code=403, detail="Admin access required")
    return current_user


def service_token_required(credentials: HTTPAuthorizationCredentials = Depends(service_bearer)):
    if credentials is None or not secrets.compare_digest(credentials.credentials, settings.SERVICE_TOKEN):
        raise HTTPException(status_code=401, detail="Unauthorized")
    return True
