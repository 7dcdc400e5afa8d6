"""
投資組合 API 路由

淨值摘要、分類明細、產業分布、複利試算與再平衡試算。
全部依目前資產即時計算，不寫入任何資料。
"""

from decimal import Decimal

from fastapi import APIRouter, Depends, HTTPException, Query, status

from wealthfolio.api.deps import get_workspace
from wealthfolio.engine.compound import (
    DEFAULT_ANNUAL_RATE, DEFAULT_YEARS, MAX_ANNUAL_RATE, MAX_YEARS, MIN_YEARS, project_growth,
)
from wealthfolio.engine.rebalance import plan_rebalance
from wealthfolio.engine.valuation import category_view, filter_visible, sector_allocation, summarize
from wealthfolio.schemas.common import ApiResponse
from wealthfolio.schemas.portfolio import (
    CategoryBucket, CategoryView, CompoundProjection, MarketTab,
    RebalancePlan, SectorSlice, ValuationSummary,
)
from wealthfolio.services.workspace import Workspace

router = APIRouter(prefix="/portfolio", tags=["投資組合"])


@router.get("/summary", response_model=ApiResponse[ValuationSummary])
async def get_summary(
    show_tw: bool = True,
    show_us: bool = True,
    workspace: Workspace = Depends(get_workspace),
):
    """淨值摘要（可隱藏台股或美股）"""
    assets = filter_visible(workspace.assets, show_tw, show_us)
    return ApiResponse(data=summarize(assets, workspace.exchange_rate))


@router.get("/categories/{bucket}", response_model=ApiResponse[CategoryView])
async def get_category(
    bucket: CategoryBucket,
    market: MarketTab = "ALL",
    show_tw: bool = True,
    show_us: bool = True,
    workspace: Workspace = Depends(get_workspace),
):
    """分類清單：STOCKS／CASH／LIABILITIES（隱藏的市場不列出）"""
    assets = filter_visible(workspace.assets, show_tw, show_us)
    return ApiResponse(data=category_view(assets, workspace.exchange_rate, bucket, market))


@router.get("/sectors", response_model=ApiResponse[list[SectorSlice]])
async def get_sectors(workspace: Workspace = Depends(get_workspace)):
    """股票產業分布"""
    return ApiResponse(data=sector_allocation(workspace.assets, workspace.exchange_rate))


@router.get("/compound", response_model=ApiResponse[CompoundProjection])
async def get_compound(
    rate: Decimal = Query(default=DEFAULT_ANNUAL_RATE, ge=0, le=MAX_ANNUAL_RATE),
    years: int = Query(default=DEFAULT_YEARS, ge=MIN_YEARS, le=MAX_YEARS),
    principal: Decimal | None = Query(default=None, ge=0),
    show_tw: bool = True,
    show_us: bool = True,
    workspace: Workspace = Depends(get_workspace),
):
    """複利成長試算；未指定本金時以目前顯示中資產的淨值計算"""
    if principal is None:
        visible = filter_visible(workspace.assets, show_tw, show_us)
        principal = summarize(visible, workspace.exchange_rate).net_worth
    return ApiResponse(data=project_growth(principal, rate, years))


@router.get("/rebalance", response_model=ApiResponse[RebalancePlan])
async def get_rebalance(
    asset_id: str,
    target_percent: Decimal = Query(ge=0, le=100),
    workspace: Workspace = Depends(get_workspace),
):
    """單一持股調整至目標比重所需的買賣金額與股數"""
    plan = plan_rebalance(workspace.assets, workspace.exchange_rate, asset_id, target_percent)
    if plan is None:
        raise HTTPException(
            status_code=status.HTTP_404_NOT_FOUND,
            detail="找不到該持股，或目前總資產為 0",
        )
    return ApiResponse(data=plan)
