"""
FastAPI 依賴注入

外部協作者（報價、匯率、AI、工作區）在啟動時建立並放在 app.state，
測試時以 dependency_overrides 替換。
"""

from fastapi import Depends, Request

from wealthfolio.advisor.analyst import PortfolioAdvisor
from wealthfolio.api.auth import get_current_user
from wealthfolio.models.user import User
from wealthfolio.price.exchange import ExchangeRateProvider
from wealthfolio.price.manager import PriceManager
from wealthfolio.services.asset_service import AssetService
from wealthfolio.services.backup_service import BackupService
from wealthfolio.services.history_service import HistoryService, InvestmentService
from wealthfolio.services.market_service import AdvisorService, ExchangeRateService
from wealthfolio.services.workspace import Workspace, WorkspaceManager


def get_workspace_manager(request: Request) -> WorkspaceManager:
    return request.app.state.workspaces


def get_price_manager(request: Request) -> PriceManager:
    return request.app.state.price_manager


def get_rate_provider(request: Request) -> ExchangeRateProvider:
    return request.app.state.rate_provider


def get_advisor(request: Request) -> PortfolioAdvisor:
    return request.app.state.advisor


async def get_workspace(
    user: User = Depends(get_current_user),
    manager: WorkspaceManager = Depends(get_workspace_manager),
) -> Workspace:
    """取得目前用戶的工作區（首次存取時載入）"""
    return await manager.get(user.id)


def get_asset_service(
    manager: WorkspaceManager = Depends(get_workspace_manager),
    price_manager: PriceManager = Depends(get_price_manager),
) -> AssetService:
    return AssetService(manager, price_manager)


def get_history_service(
    manager: WorkspaceManager = Depends(get_workspace_manager),
) -> HistoryService:
    return HistoryService(manager)


def get_investment_service(
    manager: WorkspaceManager = Depends(get_workspace_manager),
) -> InvestmentService:
    return InvestmentService(manager)


def get_exchange_service(
    manager: WorkspaceManager = Depends(get_workspace_manager),
    provider: ExchangeRateProvider = Depends(get_rate_provider),
) -> ExchangeRateService:
    return ExchangeRateService(manager, provider)


def get_advisor_service(
    manager: WorkspaceManager = Depends(get_workspace_manager),
    advisor: PortfolioAdvisor = Depends(get_advisor),
) -> AdvisorService:
    return AdvisorService(manager, advisor)


def get_backup_service(
    manager: WorkspaceManager = Depends(get_workspace_manager),
) -> BackupService:
    return BackupService(manager)
