"""
WealthFolio 後端設定模組

使用 Pydantic Settings 管理環境變數，自動驗證型別與預設值。
"""

from decimal import Decimal
from functools import lru_cache
from typing import Literal

from pydantic_settings import BaseSettings


class Settings(BaseSettings):
    """應用程式設定，透過環境變數或 .env 載入"""

    # === 應用程式 ===
    app_env: Literal["development", "production", "testing"] = "development"
    app_name: str = "WealthFolio API"
    app_version: str = "0.1.0"
    debug: bool = True

    # === 安全性 ===
    secret_key: str = "dev-secret-change-me-in-production"
    jwt_algorithm: str = "HS256"
    jwt_expire_minutes: int = 43200  # 30 天 (30 * 24 * 60)
    google_client_id: str = ""  # Google OAuth Client ID

    # === 資料儲存 ===
    # database: 雲端文件（SQLAlchemy）；local: 本機 JSON 檔
    storage_backend: Literal["database", "local"] = "database"
    database_url: str = "sqlite+aiosqlite:///./wealthfolio.db"
    local_data_dir: str = "./data"
    persist_debounce_seconds: float = 1.0
    workspace_idle_seconds: int = 1800  # 閒置工作區釋放時間
    seed_sample_portfolio: bool = False

    # === Redis ===
    redis_url: str | None = None  # None 時自動使用記憶體快取

    # === 報價與匯率 ===
    price_cache_ttl: int = 300  # 5 分鐘
    exchange_rate_url: str = "https://api.exchangerate-api.com/v4/latest/USD"
    default_exchange_rate: Decimal = Decimal("32.5")

    # === AI 分析 ===
    openai_api_key: str | None = None
    openai_model: str = "gpt-4o-mini"

    # === CORS ===
    cors_origins: list[str] = [
        "http://localhost:3000",
        "http://localhost:5173",
    ]

    model_config = {
        "env_file": ".env",
        "env_file_encoding": "utf-8",
        "case_sensitive": False,
    }

    @property
    def is_development(self) -> bool:
        return self.app_env == "development"

    @property
    def is_production(self) -> bool:
        return self.app_env == "production"

    @property
    def use_sqlite(self) -> bool:
        """判斷是否使用 SQLite（開發模式）"""
        return "sqlite" in self.database_url


@lru_cache
def get_settings() -> Settings:
    """取得快取的設定實例"""
    return Settings()
