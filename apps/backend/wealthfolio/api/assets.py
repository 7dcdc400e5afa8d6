"""
資產 API 路由

資產 CRUD、批次更新股價、報價查詢與產業判斷。
"""

import logging

from fastapi import APIRouter, Depends, HTTPException, status

from wealthfolio.api.deps import get_asset_service, get_workspace
from wealthfolio.engine.sector import detect_sector
from wealthfolio.schemas.common import ApiResponse
from wealthfolio.schemas.portfolio import PriceRefreshResult, QuoteResponse, SectorGuess
from wealthfolio.schemas.wealth import Asset, AssetCreate, AssetType, AssetUpdate
from wealthfolio.services.asset_service import AssetNotFoundError, AssetService, InvalidAssetError
from wealthfolio.services.workspace import Workspace

logger = logging.getLogger(__name__)
router = APIRouter(prefix="/assets", tags=["資產"])


def _not_found(e: AssetNotFoundError) -> HTTPException:
    return HTTPException(status_code=status.HTTP_404_NOT_FOUND, detail=str(e))


@router.get("", response_model=ApiResponse[list[Asset]])
async def list_assets(workspace: Workspace = Depends(get_workspace)):
    """取得所有資產"""
    return ApiResponse(data=workspace.assets)


@router.post("", response_model=ApiResponse[Asset], status_code=status.HTTP_201_CREATED)
async def create_asset(
    data: AssetCreate,
    workspace: Workspace = Depends(get_workspace),
    service: AssetService = Depends(get_asset_service),
):
    """新增資產（股票未指定產業時自動判斷）"""
    return ApiResponse(data=service.create(workspace, data))


@router.post("/refresh-prices", response_model=ApiResponse[PriceRefreshResult])
async def refresh_prices(
    workspace: Workspace = Depends(get_workspace),
    service: AssetService = Depends(get_asset_service),
):
    """
    批次更新所有股票市價

    每檔股票獨立查詢，失敗者保留原價並在結果中列出原因。
    """
    result = await service.refresh_prices(workspace)
    return ApiResponse(
        data=result,
        message=f"已更新 {result.updated} 筆，{result.failed} 筆未更新",
    )


@router.get("/quote", response_model=ApiResponse[QuoteResponse])
async def get_quote(
    name: str,
    type: AssetType,
    workspace: Workspace = Depends(get_workspace),
    service: AssetService = Depends(get_asset_service),
):
    """查詢單一標的目前市價（新增資產時帶入）"""
    quote = await service.quote(name, type)
    if quote is None:
        raise HTTPException(
            status_code=status.HTTP_404_NOT_FOUND,
            detail=f"無法取得 {name} 的報價",
        )
    return ApiResponse(data=quote)


@router.get("/sector", response_model=ApiResponse[SectorGuess])
async def guess_sector(name: str, workspace: Workspace = Depends(get_workspace)):
    """依名稱判斷產業"""
    return ApiResponse(data=SectorGuess(name=name, sector=detect_sector(name)))


@router.put("/{asset_id}", response_model=ApiResponse[Asset])
async def update_asset(
    asset_id: str,
    data: AssetUpdate,
    workspace: Workspace = Depends(get_workspace),
    service: AssetService = Depends(get_asset_service),
):
    """修改資產（只更新有傳入的欄位）"""
    try:
        return ApiResponse(data=service.update(workspace, asset_id, data))
    except AssetNotFoundError as e:
        raise _not_found(e)
    except InvalidAssetError as e:
        raise HTTPException(status_code=status.HTTP_422_UNPROCESSABLE_ENTITY, detail=str(e))


@router.delete("/{asset_id}", response_model=ApiResponse[None])
async def delete_asset(
    asset_id: str,
    workspace: Workspace = Depends(get_workspace),
    service: AssetService = Depends(get_asset_service),
):
    """刪除資產"""
    try:
        service.delete(workspace, asset_id)
    except AssetNotFoundError as e:
        raise _not_found(e)
    return ApiResponse(message="資產已刪除")
