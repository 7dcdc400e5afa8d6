"""
每月淨值快照

維護以月份 (YYYY-MM) 為自然鍵的 HistoryRecord 時間序列：
同一個月份最多一筆，重複快照只會就地更新，不會新增第二筆。
"""

from dataclasses import dataclass
from datetime import date

from wealthfolio.schemas.history import SnapshotOutcome
from wealthfolio.schemas.portfolio import ValuationSummary
from wealthfolio.schemas.wealth import HistoryRecord, HistoryRecordUpdate

AUTOMATIC_NOTE = "自動建立"
MANUAL_NOTE = "手動建立"


class RecordNotFoundError(LookupError):
    """找不到指定的快照"""
    pass


class DuplicateMonthError(ValueError):
    """該月份已有其他快照"""
    pass


@dataclass
class SnapshotResult:
    history: list[HistoryRecord]
    record: HistoryRecord
    outcome: SnapshotOutcome


def month_key(d: date) -> str:
    """日期轉為 YYYY-MM"""
    return f"{d.year:04d}-{d.month:02d}"


def find_month(history: list[HistoryRecord], key: str) -> HistoryRecord | None:
    return next((r for r in history if r.date == key), None)


def _stats_fields(stats: ValuationSummary, as_of: date) -> dict:
    return {
        "total_assets": stats.total_assets,
        "total_liabilities": stats.total_liabilities,
        "net_worth": stats.total_assets - stats.total_liabilities,
        "created_at": as_of.isoformat(),
        "tw_stocks": stats.tw_stocks,
        "us_stocks": stats.us_stocks,
        "cash": stats.cash,
    }


def take_snapshot(
    history: list[HistoryRecord],
    as_of: date,
    stats: ValuationSummary,
    is_automatic: bool,
) -> SnapshotResult:
    """
    建立或更新當月快照

    - 當月尚無紀錄：新增一筆
    - 已有紀錄且為自動快照：不做任何事（避免覆蓋手動修正過的數字）
    - 已有紀錄且為手動快照：覆寫數值與 createdAt，保留 id 與備註
    """
    key = month_key(as_of)
    existing = find_month(history, key)

    if existing is None:
        record = HistoryRecord(
            date=key,
            note=AUTOMATIC_NOTE if is_automatic else MANUAL_NOTE,
            **_stats_fields(stats, as_of),
        )
        return SnapshotResult(history=[*history, record], record=record, outcome="created")

    if is_automatic:
        return SnapshotResult(history=list(history), record=existing, outcome="skipped")

    record = existing.model_copy(update=_stats_fields(stats, as_of))
    updated = [record if r.id == existing.id else r for r in history]
    return SnapshotResult(history=updated, record=record, outcome="updated")


def update_record(
    history: list[HistoryRecord],
    record_id: str,
    changes: HistoryRecordUpdate,
) -> tuple[list[HistoryRecord], HistoryRecord]:
    """手動修正快照；淨值一律以 總資產 - 總負債 重新計算"""
    current = next((r for r in history if r.id == record_id), None)
    if current is None:
        raise RecordNotFoundError(f"快照 {record_id} 不存在")

    update = changes.model_dump(exclude_unset=True)
    # 必填欄位傳入 null 時視為未修改
    for required in ("date", "total_assets", "total_liabilities"):
        if required in update and update[required] is None:
            del update[required]

    new_date = update.get("date")
    if new_date and new_date != current.date:
        clash = find_month(history, new_date)
        if clash is not None:
            raise DuplicateMonthError(f"{new_date} 已有快照紀錄")

    record = current.model_copy(update=update)
    record = record.model_copy(
        update={"net_worth": record.total_assets - record.total_liabilities}
    )
    return [record if r.id == record_id else r for r in history], record


def sorted_history(history: list[HistoryRecord]) -> list[HistoryRecord]:
    """依月份由舊到新排序（走勢圖使用）"""
    return sorted(history, key=lambda r: r.date)
