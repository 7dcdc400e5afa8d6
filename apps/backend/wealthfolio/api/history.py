"""
淨值歷史 API 路由
"""

from fastapi import APIRouter, Depends, HTTPException, status

from wealthfolio.api.deps import get_history_service, get_workspace
from wealthfolio.engine.snapshot import DuplicateMonthError, RecordNotFoundError
from wealthfolio.schemas.common import ApiResponse
from wealthfolio.schemas.history import SnapshotResponse
from wealthfolio.schemas.wealth import HistoryRecord, HistoryRecordUpdate
from wealthfolio.services.history_service import HistoryService
from wealthfolio.services.workspace import Workspace

router = APIRouter(prefix="/history", tags=["淨值歷史"])

SNAPSHOT_MESSAGES = {
    "created": "已建立本月快照",
    "updated": "已更新本月快照",
    "skipped": "本月快照已存在",
}


@router.get("", response_model=ApiResponse[list[HistoryRecord]])
async def list_history(
    workspace: Workspace = Depends(get_workspace),
    service: HistoryService = Depends(get_history_service),
):
    """每月淨值快照（依月份由舊到新）"""
    return ApiResponse(data=service.list_records(workspace))


@router.post("/snapshot", response_model=ApiResponse[SnapshotResponse])
async def take_snapshot(
    workspace: Workspace = Depends(get_workspace),
    service: HistoryService = Depends(get_history_service),
):
    """手動建立本月快照；本月已有紀錄時以目前數值覆寫"""
    result = service.take_manual_snapshot(workspace)
    return ApiResponse(
        data=SnapshotResponse(outcome=result.outcome, record=result.record),
        message=SNAPSHOT_MESSAGES[result.outcome],
    )


@router.put("/{record_id}", response_model=ApiResponse[HistoryRecord])
async def update_history(
    record_id: str,
    data: HistoryRecordUpdate,
    workspace: Workspace = Depends(get_workspace),
    service: HistoryService = Depends(get_history_service),
):
    """手動修正快照數值（淨值自動重算）"""
    try:
        return ApiResponse(data=service.update_record(workspace, record_id, data))
    except RecordNotFoundError as e:
        raise HTTPException(status_code=status.HTTP_404_NOT_FOUND, detail=str(e))
    except DuplicateMonthError as e:
        raise HTTPException(status_code=status.HTTP_409_CONFLICT, detail=str(e))
