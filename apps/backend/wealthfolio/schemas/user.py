"""
帳號 Schema

註冊、登入（密碼或 Google ID Token）與目前用戶資訊。
"""

from datetime import datetime

from pydantic import BaseModel, ConfigDict, EmailStr, Field


class UserRegister(BaseModel):
    email: EmailStr
    username: str = Field(min_length=2, max_length=100)
    password: str = Field(min_length=6, max_length=128)


class UserLogin(BaseModel):
    email: EmailStr
    password: str


class GoogleLogin(BaseModel):
    """前端 Google Sign-In 取得的 ID Token"""
    id_token: str = Field(min_length=1)


class UserResponse(BaseModel):
    """目前用戶；不含密碼雜湊與 Google 帳號識別碼"""
    model_config = ConfigDict(from_attributes=True)

    id: str
    email: str
    username: str
    is_active: bool
    has_password: bool = False
    google_linked: bool = False
    created_at: datetime | None = None


class TokenResponse(BaseModel):
    access_token: str
    token_type: str = "bearer"
    expires_in: int
