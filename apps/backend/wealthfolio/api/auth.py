"""
認證 API 路由

Email 註冊／登入、Google 登入、JWT Token 生成與驗證。
其他所有路由皆需透過 get_current_user 取得登入用戶。
"""

import logging
from datetime import datetime, timedelta, timezone

import jwt
from fastapi import APIRouter, Depends, HTTPException, status
from fastapi.security import HTTPAuthorizationCredentials, HTTPBearer
from google.auth.transport import requests as google_requests
from google.oauth2 import id_token
from passlib.context import CryptContext
from sqlalchemy import select
from sqlalchemy.ext.asyncio import AsyncSession

from wealthfolio.config import get_settings
from wealthfolio.database import get_db
from wealthfolio.models.user import User
from wealthfolio.schemas.common import ApiResponse
from wealthfolio.schemas.user import GoogleLogin, TokenResponse, UserLogin, UserRegister, UserResponse

logger = logging.getLogger(__name__)
router = APIRouter(prefix="/auth", tags=["認證"])

pwd_context = CryptContext(schemes=["bcrypt"], deprecated="auto")
security = HTTPBearer(auto_error=False)
settings = get_settings()


def create_token(user_id: str) -> str:
    """產生 JWT Token"""
    now = datetime.now(timezone.utc)
    payload = {
        "sub": user_id,
        "exp": now + timedelta(minutes=settings.jwt_expire_minutes),
        "iat": now,
    }
    return jwt.encode(payload, settings.secret_key, algorithm=settings.jwt_algorithm)


def verify_token(token: str) -> str | None:
    """驗證 JWT Token，回傳 user_id"""
    try:
        payload = jwt.decode(
            token, settings.secret_key, algorithms=[settings.jwt_algorithm]
        )
        return payload.get("sub")
    except jwt.PyJWTError:
        return None


def _token_response(user: User) -> ApiResponse[TokenResponse]:
    return ApiResponse(
        data=TokenResponse(
            access_token=create_token(user.id),
            expires_in=settings.jwt_expire_minutes * 60,
        )
    )


async def _find_by_email(db: AsyncSession, email: str) -> User | None:
    result = await db.execute(select(User).where(User.email == email))
    return result.scalar_one_or_none()


@router.post("/register", response_model=ApiResponse[UserResponse])
async def register(data: UserRegister, db: AsyncSession = Depends(get_db)):
    """用戶註冊"""
    if await _find_by_email(db, data.email):
        raise HTTPException(
            status_code=status.HTTP_409_CONFLICT,
            detail="此 Email 已被註冊",
        )

    user = User(
        email=data.email,
        username=data.username,
        hashed_password=pwd_context.hash(data.password),
    )
    db.add(user)
    await db.flush()
    await db.refresh(user)

    logger.info("新用戶註冊: %s", user.email)
    return ApiResponse(data=UserResponse.model_validate(user))


@router.post("/login", response_model=ApiResponse[TokenResponse])
async def login(data: UserLogin, db: AsyncSession = Depends(get_db)):
    """用戶登入"""
    user = await _find_by_email(db, data.email)
    if not user:
        raise HTTPException(
            status_code=status.HTTP_401_UNAUTHORIZED,
            detail="Email 或密碼錯誤",
        )

    # Google 登入建立的帳號沒有密碼
    if not user.hashed_password:
        raise HTTPException(
            status_code=status.HTTP_401_UNAUTHORIZED,
            detail="此帳號已綁定 Google 登入，請使用 Google 登入",
        )

    if not pwd_context.verify(data.password, user.hashed_password):
        raise HTTPException(
            status_code=status.HTTP_401_UNAUTHORIZED,
            detail="Email 或密碼錯誤",
        )

    return _token_response(user)


@router.post("/google", response_model=ApiResponse[TokenResponse])
async def google_login(data: GoogleLogin, db: AsyncSession = Depends(get_db)):
    """Google 登入（驗證前端取得的 Google ID Token）"""
    try:
        idinfo = id_token.verify_oauth2_token(
            data.id_token, google_requests.Request(), settings.google_client_id or None
        )
    except ValueError:
        raise HTTPException(
            status_code=status.HTTP_401_UNAUTHORIZED,
            detail="Google Token 驗證失敗",
        )

    google_id = idinfo["sub"]
    email = idinfo["email"]

    result = await db.execute(select(User).where(User.google_id == google_id))
    user = result.scalar_one_or_none()

    if not user:
        # 先前以 Email 註冊的用戶直接綁定 Google 帳號
        user = await _find_by_email(db, email)
        if user:
            user.google_id = google_id
        else:
            user = User(
                email=email,
                username=idinfo.get("name") or email.split("@")[0],
                google_id=google_id,
                hashed_password=None,
            )
            db.add(user)
            logger.info("Google 新用戶: %s", email)

        await db.flush()
        await db.refresh(user)

    return _token_response(user)


# === 依賴注入：取得當前用戶 ===

async def get_current_user(
    credentials: HTTPAuthorizationCredentials | None = Depends(security),
    db: AsyncSession = Depends(get_db),
) -> User:
    """取得當前已認證的用戶"""
    if not credentials:
        raise HTTPException(
            status_code=status.HTTP_401_UNAUTHORIZED,
            detail="未提供認證 Token",
        )

    user_id = verify_token(credentials.credentials)
    if not user_id:
        raise HTTPException(
            status_code=status.HTTP_401_UNAUTHORIZED,
            detail="Token 無效或已過期",
        )

    user = await db.get(User, user_id)
    if not user or not user.is_active:
        raise HTTPException(
            status_code=status.HTTP_401_UNAUTHORIZED,
            detail="用戶不存在或已停用",
        )

    return user


@router.get("/me", response_model=ApiResponse[UserResponse])
async def me(user: User = Depends(get_current_user)):
    """取得目前登入的用戶資料"""
    return ApiResponse(data=UserResponse.model_validate(user))
