"""
淨值歷史與資金投入服務層
"""

import logging
from collections.abc import Callable
from datetime import date
from decimal import Decimal

from wealthfolio.engine.snapshot import SnapshotResult, sorted_history, take_snapshot, update_record
from wealthfolio.engine.valuation import ZERO, summarize
from wealthfolio.schemas.history import InvestmentLedger, InvestmentMonth
from wealthfolio.schemas.wealth import (
    HistoryRecord, HistoryRecordUpdate, InvestmentCreate, InvestmentRecord,
)
from wealthfolio.services.workspace import Workspace, WorkspaceManager

logger = logging.getLogger(__name__)


class HistoryService:

    def __init__(self, workspaces: WorkspaceManager, today: Callable[[], date] = date.today):
        self.workspaces = workspaces
        self._today = today

    def list_records(self, workspace: Workspace) -> list[HistoryRecord]:
        return sorted_history(workspace.document.history)

    def take_manual_snapshot(self, workspace: Workspace) -> SnapshotResult:
        """手動快照：當月已有紀錄時覆寫數值，保留 id 與備註"""
        document = workspace.document
        stats = summarize(document.assets, document.exchange_rate)
        result = take_snapshot(document.history, self._today(), stats, is_automatic=False)
        self.workspaces.commit(workspace, document.model_copy(update={"history": result.history}))
        logger.info("用戶 %s 手動快照 %s (%s)", workspace.user_id, result.record.date, result.outcome)
        return result

    def update_record(
        self, workspace: Workspace, record_id: str, changes: HistoryRecordUpdate
    ) -> HistoryRecord:
        document = workspace.document
        history, record = update_record(document.history, record_id, changes)
        self.workspaces.commit(workspace, document.model_copy(update={"history": history}))
        return record


def _amount_twd(record: InvestmentRecord, exchange_rate: Decimal) -> Decimal:
    if record.currency == "USD":
        return record.amount * exchange_rate
    return record.amount


class InvestmentService:
    """資金投入紀錄（只增不改，不影響淨值）"""

    def __init__(self, workspaces: WorkspaceManager):
        self.workspaces = workspaces

    def add(self, workspace: Workspace, data: InvestmentCreate) -> InvestmentRecord:
        record = InvestmentRecord(**data.model_dump())
        document = workspace.document
        self.workspaces.commit(
            workspace,
            document.model_copy(update={"investments": [*document.investments, record]}),
        )
        return record

    def ledger(self, workspace: Workspace) -> InvestmentLedger:
        """
        依月份分組（新到舊），各月以目前匯率換算台幣合計

        同月份內最後新增的排在最前面。
        """
        rate = workspace.exchange_rate
        groups: dict[str, list[InvestmentRecord]] = {}
        for record in reversed(workspace.document.investments):
            groups.setdefault(record.date, []).append(record)

        months = [
            InvestmentMonth(
                month=month,
                records=records,
                total_twd=sum((_amount_twd(r, rate) for r in records), ZERO),
            )
            for month, records in sorted(groups.items(), key=lambda item: item[0], reverse=True)
        ]
        return InvestmentLedger(exchange_rate=rate, months=months)
