"""
用戶資料模型

一個用戶可以用 Email/密碼、Google 帳號或兩者登入；
僅以 Google 建立的帳號沒有密碼。
"""

import uuid
from datetime import datetime

from sqlalchemy import DateTime, String, func
from sqlalchemy.orm import Mapped, mapped_column, relationship

from wealthfolio.database import Base


def _new_user_id() -> str:
    return str(uuid.uuid4())


class User(Base):
    __tablename__ = "users"

    id: Mapped[str] = mapped_column(String(36), primary_key=True, default=_new_user_id)
    email: Mapped[str] = mapped_column(String(255), unique=True, index=True)
    username: Mapped[str] = mapped_column(String(100))
    hashed_password: Mapped[str | None] = mapped_column(String(255), default=None)
    google_id: Mapped[str | None] = mapped_column(
        String(64), unique=True, index=True, default=None
    )
    is_active: Mapped[bool] = mapped_column(default=True)
    created_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True), server_default=func.now()
    )

    # 每位用戶僅有一份資產文件，由 WorkspaceManager 讀寫，ORM 端不預先載入
    document = relationship(
        "WealthDocumentRow", back_populates="user", uselist=False, lazy="noload"
    )

    @property
    def has_password(self) -> bool:
        return bool(self.hashed_password)

    @property
    def google_linked(self) -> bool:
        return self.google_id is not None

    def __repr__(self) -> str:
        return f"<User {self.id} {self.email}>"
