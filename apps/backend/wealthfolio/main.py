"""
WealthFolio FastAPI 應用程式入口

包含 CORS 設定、全域錯誤處理中介軟體、
生命週期管理（初始化資料庫、儲存層、延遲寫入排程器與外部服務）。
"""

import logging
import time
from contextlib import asynccontextmanager

from apscheduler.schedulers.asyncio import AsyncIOScheduler
from fastapi import FastAPI, Request
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse

from wealthfolio.advisor.analyst import PortfolioAdvisor
from wealthfolio.api.router import api_router
from wealthfolio.config import Settings, get_settings
from wealthfolio.database import async_session, engine, init_db
from wealthfolio.price.exchange import ExchangeRateProvider
from wealthfolio.price.manager import PriceManager
from wealthfolio.redis_client import cache_backend, close_redis
from wealthfolio.schemas.common import ErrorResponse
from wealthfolio.services.persistence import DebouncedSaver
from wealthfolio.services.workspace import WorkspaceManager
from wealthfolio.storage.base import DocumentStore
from wealthfolio.storage.local_store import LocalDocumentStore
from wealthfolio.storage.sql_store import SqlDocumentStore

# 設定日誌
logging.basicConfig(
    level=logging.INFO,
    format="%(asctime)s [%(levelname)s] %(name)s: %(message)s",
)
logger = logging.getLogger(__name__)

settings = get_settings()


def build_store(settings: Settings) -> DocumentStore:
    """依 STORAGE_BACKEND 選擇儲存層"""
    if settings.storage_backend == "local":
        return LocalDocumentStore(settings.local_data_dir)
    return SqlDocumentStore(async_session)


@asynccontextmanager
async def lifespan(app: FastAPI):
    """應用程式生命週期管理"""
    # === 啟動時 ===
    logger.info("🚀 WealthFolio API 啟動中...")
    logger.info("環境: %s，儲存方式: %s", settings.app_env, settings.storage_backend)

    # 用戶帳號一律存在資料庫
    await init_db()
    logger.info("✅ 資料庫初始化完成")

    scheduler = AsyncIOScheduler()
    scheduler.start()

    store = build_store(settings)
    saver = DebouncedSaver(store, scheduler, settings.persist_debounce_seconds)
    app.state.scheduler = scheduler
    app.state.saver = saver
    app.state.workspaces = WorkspaceManager(
        store,
        saver,
        default_exchange_rate=settings.default_exchange_rate,
        seed_sample=settings.seed_sample_portfolio,
    )
    scheduler.add_job(
        app.state.workspaces.evict_idle,
        trigger="interval",
        seconds=max(settings.workspace_idle_seconds // 2, 1),
        args=[settings.workspace_idle_seconds],
        id="evict-idle-workspaces",
        replace_existing=True,
    )
    app.state.price_manager = PriceManager()
    app.state.rate_provider = ExchangeRateProvider()
    app.state.advisor = PortfolioAdvisor()

    yield

    # === 關閉時 ===
    logger.info("WealthFolio API 關閉中...")
    failed = await saver.flush_all()
    if failed:
        logger.error("關閉前有 %d 位用戶資料寫入失敗", failed)
    scheduler.shutdown(wait=False)
    await close_redis()
    await engine.dispose()
    logger.info("👋 WealthFolio API 已關閉")


# 建立 FastAPI 應用
app = FastAPI(
    title=settings.app_name,
    version=settings.app_version,
    description="個人資產與淨值追蹤 API",
    # 正式環境不公開 API 文件
    docs_url=None if settings.is_production else "/docs",
    redoc_url=None if settings.is_production else "/redoc",
    lifespan=lifespan,
)

# === CORS 中介軟體 ===
app.add_middleware(
    CORSMiddleware,
    allow_origins=settings.cors_origins,
    allow_credentials=True,
    allow_methods=["*"],
    allow_headers=["*"],
)


# === 全域錯誤處理 ===

@app.middleware("http")
async def error_handling_middleware(request: Request, call_next):
    """
    全域錯誤處理與請求日誌中介軟體

    - 記錄每個請求的處理時間
    - 捕獲未預期的例外並回傳統一格式
    """
    start_time = time.time()

    try:
        response = await call_next(request)
    except Exception as e:
        process_time = time.time() - start_time
        logger.error(
            "%s %s - 500 (%.3fs) Error: %s",
            request.method,
            request.url.path,
            process_time,
            str(e),
        )
        return JSONResponse(
            status_code=500,
            content=ErrorResponse(
                error="Internal Server Error",
                detail=str(e) if settings.is_development else None,
            ).model_dump(),
        )

    process_time = time.time() - start_time
    logger.info(
        "%s %s - %d (%.3fs)",
        request.method,
        request.url.path,
        response.status_code,
        process_time,
    )
    response.headers["X-Process-Time"] = f"{process_time:.3f}"
    return response


# === 註冊路由 ===
app.include_router(api_router)


# === 健康檢查 ===

@app.get("/health", tags=["系統"])
async def health_check():
    """API 健康檢查"""
    return {
        "status": "healthy",
        "version": settings.app_version,
        "environment": settings.app_env,
        "storage": settings.storage_backend,
        "cache": cache_backend(),
    }
