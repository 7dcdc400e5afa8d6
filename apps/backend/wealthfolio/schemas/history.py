"""
淨值歷史與資金投入紀錄 Schema
"""

from typing import Literal

from wealthfolio.schemas.wealth import CamelModel, HistoryRecord, InvestmentRecord, Money

SnapshotOutcome = Literal["created", "updated", "skipped"]


class SnapshotResponse(CamelModel):
    """快照結果：created 新增、updated 覆寫、skipped 已存在且為自動快照"""
    outcome: SnapshotOutcome
    record: HistoryRecord


class InvestmentMonth(CamelModel):
    """單月投入彙總"""
    month: str
    records: list[InvestmentRecord]
    total_twd: Money


class InvestmentLedger(CamelModel):
    exchange_rate: Money
    months: list[InvestmentMonth]
