"""
資金投入紀錄 API 路由
"""

from fastapi import APIRouter, Depends, status

from wealthfolio.api.deps import get_investment_service, get_workspace
from wealthfolio.schemas.common import ApiResponse
from wealthfolio.schemas.history import InvestmentLedger
from wealthfolio.schemas.wealth import InvestmentCreate, InvestmentRecord
from wealthfolio.services.history_service import InvestmentService
from wealthfolio.services.workspace import Workspace

router = APIRouter(prefix="/investments", tags=["資金投入"])


@router.get("", response_model=ApiResponse[InvestmentLedger])
async def get_ledger(
    workspace: Workspace = Depends(get_workspace),
    service: InvestmentService = Depends(get_investment_service),
):
    """依月份分組的投入紀錄（新到舊）"""
    return ApiResponse(data=service.ledger(workspace))


@router.post("", response_model=ApiResponse[InvestmentRecord], status_code=status.HTTP_201_CREATED)
async def add_investment(
    data: InvestmentCreate,
    workspace: Workspace = Depends(get_workspace),
    service: InvestmentService = Depends(get_investment_service),
):
    """新增一筆投入紀錄"""
    return ApiResponse(data=service.add(workspace, data))
