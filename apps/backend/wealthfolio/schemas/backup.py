"""
備份匯出／匯入 Schema

備份檔格式：{ version, timestamp, exchangeRate, assets, history }
"""

from datetime import datetime

from pydantic import Field

from wealthfolio.schemas.wealth import Asset, CamelModel, HistoryRecord, Money

BACKUP_VERSION = "1.0"


class BackupFile(CamelModel):
    version: str = BACKUP_VERSION
    timestamp: datetime
    exchange_rate: Money
    assets: list[Asset]
    history: list[HistoryRecord] = Field(default_factory=list)


class ImportResult(CamelModel):
    """匯入結果；applied 為 False 時僅為預覽，尚未覆蓋資料"""
    applied: bool
    asset_count: int
    history_count: int
    message: str
