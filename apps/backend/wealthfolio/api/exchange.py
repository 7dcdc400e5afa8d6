"""
匯率 API 路由

USD/TWD 匯率（1 USD = rate TWD），可自動更新或手動設定。
"""

from fastapi import APIRouter, Depends

from wealthfolio.api.deps import get_exchange_service, get_workspace
from wealthfolio.schemas.common import ApiResponse
from wealthfolio.schemas.market import ExchangeRateResponse, ExchangeRateUpdate
from wealthfolio.services.market_service import ExchangeRateService
from wealthfolio.services.workspace import Workspace

router = APIRouter(prefix="/exchange-rate", tags=["匯率"])


@router.get("", response_model=ApiResponse[ExchangeRateResponse])
async def get_exchange_rate(workspace: Workspace = Depends(get_workspace)):
    """目前使用中的匯率"""
    return ApiResponse(data=ExchangeRateResponse(rate=workspace.exchange_rate))


@router.post("/refresh", response_model=ApiResponse[ExchangeRateResponse])
async def refresh_exchange_rate(
    workspace: Workspace = Depends(get_workspace),
    service: ExchangeRateService = Depends(get_exchange_service),
):
    """
    從外部服務取得最新匯率

    失敗時保留原匯率，updated 為 false 並附上說明。
    """
    result = await service.refresh(workspace)
    return ApiResponse(data=result, message=result.message)


@router.put("", response_model=ApiResponse[ExchangeRateResponse])
async def set_exchange_rate(
    data: ExchangeRateUpdate,
    workspace: Workspace = Depends(get_workspace),
    service: ExchangeRateService = Depends(get_exchange_service),
):
    """手動設定匯率"""
    return ApiResponse(data=service.set_manual(workspace, data.rate))
