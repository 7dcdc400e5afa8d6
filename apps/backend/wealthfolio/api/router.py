"""
API 路由集中註冊
"""

from fastapi import APIRouter

from wealthfolio.api.advisor import router as advisor_router
from wealthfolio.api.assets import router as assets_router
from wealthfolio.api.auth import router as auth_router
from wealthfolio.api.backup import router as backup_router
from wealthfolio.api.exchange import router as exchange_router
from wealthfolio.api.history import router as history_router
from wealthfolio.api.investments import router as investments_router
from wealthfolio.api.portfolio import router as portfolio_router

api_router = APIRouter(prefix="/api")
api_router.include_router(auth_router)
api_router.include_router(assets_router)
api_router.include_router(portfolio_router)
api_router.include_router(history_router)
api_router.include_router(investments_router)
api_router.include_router(exchange_router)
api_router.include_router(advisor_router)
api_router.include_router(backup_router)
