"""
WealthFolio 資料庫連線模組

SQLAlchemy 2.0 async engine，保存用戶帳號與雲端資料文件。
本機開發預設 SQLite，雲端部署可改用 PostgreSQL（asyncpg）。
"""

from collections.abc import AsyncGenerator

from sqlalchemy import event
from sqlalchemy.ext.asyncio import (
    AsyncSession,
    async_sessionmaker,
    create_async_engine,
)
from sqlalchemy.orm import DeclarativeBase

from wealthfolio.config import get_settings

settings = get_settings()


def _async_url(url: str) -> str:
    """postgres:// 與 postgresql:// 一律改用 asyncpg 驅動"""
    for prefix in ("postgres://", "postgresql://"):
        if url.startswith(prefix):
            return "postgresql+asyncpg://" + url[len(prefix):]
    return url


def _engine_options() -> dict:
    options: dict = {"echo": settings.is_development and settings.debug}
    if settings.use_sqlite:
        options["connect_args"] = {"check_same_thread": False}
    else:
        options.update(pool_size=5, max_overflow=5, pool_pre_ping=True)
    return options


engine = create_async_engine(_async_url(settings.database_url), **_engine_options())

if settings.use_sqlite:
    @event.listens_for(engine.sync_engine, "connect")
    def _enable_sqlite_foreign_keys(dbapi_connection, connection_record):
        # 刪除用戶時一併刪除資料文件 (ON DELETE CASCADE)
        cursor = dbapi_connection.cursor()
        cursor.execute("PRAGMA foreign_keys=ON")
        cursor.close()

async_session = async_sessionmaker(
    engine,
    class_=AsyncSession,
    expire_on_commit=False,
)


class Base(DeclarativeBase):
    """所有 ORM Model 的基礎類別"""
    pass


async def get_db() -> AsyncGenerator[AsyncSession, None]:
    """FastAPI 依賴注入：取得資料庫 session，請求結束時提交"""
    async with async_session() as session:
        try:
            yield session
            await session.commit()
        except Exception:
            await session.rollback()
            raise


async def init_db() -> None:
    """建立尚未存在的資料表（users、wealth_documents）"""
    import wealthfolio.models  # noqa: F401  註冊所有 Model

    async with engine.begin() as conn:
        await conn.run_sync(Base.metadata.create_all)
