"""
備份 API 路由

匯出 JSON 備份檔；匯入時先預覽，帶 confirm=true 才覆蓋目前資料。
"""

from datetime import date

from fastapi import APIRouter, Depends, File, HTTPException, Response, UploadFile, status

from wealthfolio.api.deps import get_backup_service, get_workspace
from wealthfolio.schemas.backup import ImportResult
from wealthfolio.schemas.common import ApiResponse
from wealthfolio.services.backup_service import BackupService, BackupValidationError, backup_filename
from wealthfolio.services.workspace import Workspace

router = APIRouter(prefix="/backup", tags=["備份"])


@router.get("/export")
async def export_backup(
    workspace: Workspace = Depends(get_workspace),
    service: BackupService = Depends(get_backup_service),
):
    """下載備份檔 { version, timestamp, exchangeRate, assets, history }"""
    backup = service.export(workspace)
    return Response(
        content=backup.model_dump_json(by_alias=True, indent=2),
        media_type="application/json",
        headers={
            "Content-Disposition": f'attachment; filename="{backup_filename(date.today())}"',
        },
    )


@router.post("/import", response_model=ApiResponse[ImportResult])
async def import_backup(
    confirm: bool = False,
    file: UploadFile = File(...),
    workspace: Workspace = Depends(get_workspace),
    service: BackupService = Depends(get_backup_service),
):
    """
    匯入備份檔

    未帶 confirm=true 時只驗證並回傳將覆蓋的筆數，不會修改資料。
    """
    content = await file.read()
    try:
        result = service.import_backup(workspace, content.decode("utf-8-sig"), confirm=confirm)
    except UnicodeDecodeError:
        raise HTTPException(
            status_code=status.HTTP_400_BAD_REQUEST,
            detail="無法讀取檔案，請確認格式正確。",
        )
    except BackupValidationError as e:
        raise HTTPException(status_code=status.HTTP_400_BAD_REQUEST, detail=str(e))

    return ApiResponse(data=result, message=result.message)
