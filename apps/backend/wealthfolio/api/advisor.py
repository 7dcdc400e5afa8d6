"""
AI 分析 API 路由
"""

from fastapi import APIRouter, Depends

from wealthfolio.api.deps import get_advisor_service, get_workspace
from wealthfolio.schemas.common import ApiResponse
from wealthfolio.schemas.market import AdvisorResponse
from wealthfolio.services.market_service import AdvisorService
from wealthfolio.services.workspace import Workspace

router = APIRouter(prefix="/advisor", tags=["AI 分析"])


@router.get("", response_model=ApiResponse[AdvisorResponse])
async def get_analysis(workspace: Workspace = Depends(get_workspace)):
    """最近一次的分析結果"""
    return ApiResponse(data=AdvisorResponse(analysis=workspace.document.ai_analysis))


@router.post("/analyze", response_model=ApiResponse[AdvisorResponse])
async def analyze(
    show_tw: bool = True,
    show_us: bool = True,
    workspace: Workspace = Depends(get_workspace),
    service: AdvisorService = Depends(get_advisor_service),
):
    """分析目前顯示中的資產配置"""
    result = await service.analyze(workspace, show_tw, show_us)
    return ApiResponse(data=result, message=result.message)
