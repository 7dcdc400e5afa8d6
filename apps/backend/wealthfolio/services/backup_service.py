"""
備份匯出／匯入服務層

匯入流程分兩步：未確認時只驗證並回傳預覽，確認後才覆蓋目前資料。
驗證失敗一律整份拒絕，不會只套用一部分。
"""

import json
import logging
from dataclasses import dataclass
from datetime import date, datetime, timezone
from decimal import Decimal, InvalidOperation

from pydantic import TypeAdapter, ValidationError

from wealthfolio.schemas.backup import BACKUP_VERSION, BackupFile, ImportResult
from wealthfolio.schemas.wealth import Asset, HistoryRecord
from wealthfolio.services.sequencer import TOPIC_EXCHANGE_RATE
from wealthfolio.services.workspace import Workspace, WorkspaceManager

logger = logging.getLogger(__name__)

_assets_adapter = TypeAdapter(list[Asset])
_history_adapter = TypeAdapter(list[HistoryRecord])


class BackupValidationError(ValueError):
    """備份檔格式錯誤"""
    pass


@dataclass
class PendingImport:
    """驗證通過、尚未套用的匯入內容；None 代表該欄位不覆蓋"""
    assets: list[Asset]
    history: list[HistoryRecord] | None
    exchange_rate: Decimal | None


def backup_filename(today: date) -> str:
    return f"wealthfolio_backup_{today.isoformat()}.json"


def _parse_rate(raw) -> Decimal | None:
    if raw is None:
        return None
    if isinstance(raw, bool) or not isinstance(raw, (int, float, str)):
        raise BackupValidationError("無效的資料格式：匯率必須為數字")
    try:
        rate = Decimal(str(raw))
    except InvalidOperation as e:
        raise BackupValidationError("無效的資料格式：匯率必須為數字") from e
    if not rate.is_finite() or rate < 0:
        raise BackupValidationError("無效的資料格式：匯率必須為正數")
    # 0 視為未提供
    return rate or None


def parse_backup(raw: bytes | str) -> PendingImport:
    """
    解析並驗證備份檔

    - assets 必須存在且為陣列
    - history 可省略（省略時不覆蓋歷史紀錄）
    - exchangeRate 可省略或為 0（省略時不覆蓋匯率）

    Raises:
        BackupValidationError: JSON 無法解析或欄位格式錯誤
    """
    try:
        data = json.loads(raw)
    except (TypeError, ValueError) as e:
        raise BackupValidationError("無法讀取檔案，請確認格式正確。") from e

    if not isinstance(data, dict) or not isinstance(data.get("assets"), list):
        raise BackupValidationError("無效的資料格式：找不到資產資料 (Assets)")

    try:
        assets = [a.normalized() for a in _assets_adapter.validate_python(data["assets"])]
        history = None
        if data.get("history") is not None:
            history = _history_adapter.validate_python(data["history"])
    except ValidationError as e:
        raise BackupValidationError(f"無效的資料格式：{e.error_count()} 個欄位錯誤") from e

    if history is not None and len({r.date for r in history}) != len(history):
        raise BackupValidationError("無效的資料格式：同一月份有多筆歷史紀錄")

    return PendingImport(
        assets=assets,
        history=history,
        exchange_rate=_parse_rate(data.get("exchangeRate")),
    )


class BackupService:

    def __init__(self, workspaces: WorkspaceManager):
        self.workspaces = workspaces

    def export(self, workspace: Workspace) -> BackupFile:
        document = workspace.document
        return BackupFile(
            version=BACKUP_VERSION,
            timestamp=datetime.now(timezone.utc),
            exchange_rate=document.exchange_rate,
            assets=document.assets,
            history=document.history,
        )

    def import_backup(self, workspace: Workspace, raw: bytes | str, confirm: bool = False) -> ImportResult:
        """
        匯入備份檔

        confirm 為 False 時只驗證並回傳將覆蓋的筆數；
        為 True 時才以備份內容覆蓋目前資料。

        Raises:
            BackupValidationError: 備份檔格式錯誤（不會套用任何內容）
        """
        pending = parse_backup(raw)
        history_count = len(pending.history or [])

        if not confirm:
            return ImportResult(
                applied=False,
                asset_count=len(pending.assets),
                history_count=history_count,
                message=(
                    "確認匯入資料？這將會覆蓋目前的設定："
                    f"{len(pending.assets)} 筆資產、{history_count} 筆歷史紀錄"
                ),
            )

        update: dict = {"assets": pending.assets}
        if pending.history is not None:
            update["history"] = pending.history
        if pending.exchange_rate is not None:
            update["exchange_rate"] = pending.exchange_rate
            workspace.sequencer.issue(TOPIC_EXCHANGE_RATE)

        self.workspaces.commit(workspace, workspace.document.model_copy(update=update))
        logger.info(
            "用戶 %s 匯入備份: %d 筆資產、%d 筆歷史紀錄",
            workspace.user_id, len(pending.assets), history_count,
        )
        return ImportResult(
            applied=True,
            asset_count=len(pending.assets),
            history_count=history_count,
            message="資料已匯入！",
        )
