"""
用戶工作區

每位用戶在記憶體中保有一份 WealthDocument。第一次存取時從儲存層
載入，並執行一次性的「載入中 -> 就緒」轉換：

1. 處理到期的貸款自動還款
2. 以還款後的資產檢查當月自動快照

兩者在每次載入時執行一次；之後的任何修改都不會再觸發。
長駐的工作區跨日後視為重新載入，再執行一次檢查；
閒置且已寫入完畢的工作區會被釋放，下次存取時重新載入。
"""

import asyncio
import enum
import logging
import time
from collections.abc import Callable
from dataclasses import dataclass, field
from datetime import date, datetime, timezone
from decimal import Decimal

from wealthfolio.engine.repayment import apply_scheduled_repayments
from wealthfolio.engine.snapshot import take_snapshot
from wealthfolio.engine.valuation import summarize
from wealthfolio.services.persistence import DebouncedSaver
from wealthfolio.schemas.wealth import Asset, WealthDocument
from wealthfolio.services.sequencer import RequestSequencer
from wealthfolio.storage.base import DocumentStore

logger = logging.getLogger(__name__)

# 範例投資組合（SEED_SAMPLE_PORTFOLIO=true 時給新用戶）
SAMPLE_PORTFOLIO: list[dict] = [
    {"type": "TW_STOCK", "name": "2330 台積電", "shares": 1000,
     "costBasis": 600, "currentPrice": 1450, "note": "Long term hold",
     "sector": "SEMICONDUCTOR"},
    {"type": "US_STOCK", "name": "NVDA", "shares": 20,
     "costBasis": 450, "currentPrice": "181.46", "note": "AI play",
     "sector": "SEMICONDUCTOR"},
    {"type": "US_STOCK", "name": "VOO", "shares": 15,
     "costBasis": 380, "currentPrice": 520, "note": "S&P 500 ETF",
     "sector": "ETF"},
    {"type": "CASH_TWD", "name": "台幣活存", "costBasis": 1,
     "currentPrice": 500000, "note": "Emergency Fund"},
    {"type": "CASH_USD", "name": "美金活存", "costBasis": 1,
     "currentPrice": 3000, "note": "Waiting for dip"},
    {"type": "LOAN_TWD", "name": "信用貸款", "costBasis": "2.5",
     "currentPrice": 800000, "note": "投資週轉用"},
]


class LoadPhase(str, enum.Enum):
    LOADING = "LOADING"
    READY = "READY"


@dataclass
class Workspace:
    user_id: str
    document: WealthDocument
    phase: LoadPhase = LoadPhase.LOADING
    sequencer: RequestSequencer = field(default_factory=RequestSequencer)
    loaded_on: date | None = None
    last_access: float = field(default_factory=time.monotonic)

    @property
    def assets(self) -> list[Asset]:
        return self.document.assets

    @property
    def exchange_rate(self) -> Decimal:
        return self.document.exchange_rate


def sample_document(exchange_rate: Decimal) -> WealthDocument:
    assets = [Asset.model_validate(item).normalized() for item in SAMPLE_PORTFOLIO]
    return WealthDocument(assets=assets, exchange_rate=exchange_rate)


class WorkspaceManager:
    """
    工作區管理

    使用方式：
        workspace = await manager.get(user.id)
        manager.commit(workspace, workspace.document.model_copy(update={...}))
    """

    def __init__(
        self,
        store: DocumentStore,
        saver: DebouncedSaver,
        default_exchange_rate: Decimal,
        seed_sample: bool = False,
        today: Callable[[], date] = date.today,
    ):
        self._store = store
        self._saver = saver
        self._default_rate = default_exchange_rate
        self._seed_sample = seed_sample
        self._today = today
        self._workspaces: dict[str, Workspace] = {}
        self._locks: dict[str, asyncio.Lock] = {}

    async def get(self, user_id: str) -> Workspace:
        """取得工作區；同一用戶的並行首次請求只會載入一次"""
        workspace = self._workspaces.get(user_id)
        if workspace is None or workspace.loaded_on != self._today():
            lock = self._locks.setdefault(user_id, asyncio.Lock())
            async with lock:
                workspace = self._workspaces.get(user_id)
                if workspace is None:
                    # 剛被釋放的工作區可能還有待寫資料，先寫入再讀取
                    if not self._saver.is_idle(user_id):
                        await self._saver.flush(user_id)
                    workspace = await self._load(user_id)
                    self._workspaces[user_id] = workspace
                elif workspace.loaded_on != self._today():
                    self._reload(workspace)
        workspace.last_access = time.monotonic()
        return workspace

    async def evict_idle(self, max_idle_seconds: float) -> int:
        """釋放閒置超過 max_idle_seconds 且沒有待寫資料的工作區"""
        now = time.monotonic()
        evicted = []
        for user_id, workspace in list(self._workspaces.items()):
            lock = self._locks.get(user_id)
            if now - workspace.last_access < max_idle_seconds:
                continue
            if not self._saver.is_idle(user_id) or (lock is not None and lock.locked()):
                continue
            del self._workspaces[user_id]
            self._locks.pop(user_id, None)
            evicted.append(user_id)
        if evicted:
            logger.info("釋放 %d 個閒置工作區", len(evicted))
        return len(evicted)

    def commit(self, workspace: Workspace, document: WealthDocument) -> WealthDocument:
        """替換工作區文件、更新時間並排程寫入"""
        document = document.model_copy(update={"last_updated": datetime.now(timezone.utc)})
        workspace.document = document
        self._saver.schedule(workspace.user_id, document)
        return document

    async def _load(self, user_id: str) -> Workspace:
        document = await self._store.load(user_id)
        created = document is None
        if created:
            if self._seed_sample:
                document = sample_document(self._default_rate)
            else:
                document = WealthDocument(exchange_rate=self._default_rate)
            logger.info("建立用戶 %s 的新資料文件", user_id)

        workspace = Workspace(user_id=user_id, document=document)
        changed = self._finish_loading(workspace) or created
        if changed:
            self.commit(workspace, workspace.document)
        return workspace

    def _reload(self, workspace: Workspace) -> None:
        logger.info("用戶 %s 工作區跨日，重新執行載入檢查", workspace.user_id)
        workspace.phase = LoadPhase.LOADING
        if self._finish_loading(workspace):
            self.commit(workspace, workspace.document)

    def _finish_loading(self, workspace: Workspace) -> bool:
        """執行一次性的載入後檢查，回傳文件是否有變動"""
        if workspace.phase is LoadPhase.READY:
            return False

        today = self._today()
        document = workspace.document
        changed = False

        repayment = apply_scheduled_repayments(document.assets, today)
        if repayment.changed:
            logger.info(
                "用戶 %s 自動還款 %d 筆貸款", workspace.user_id, len(repayment.charged)
            )
            document = document.model_copy(update={"assets": repayment.assets})
            changed = True

        # 沒有資產時不建立自動快照
        if document.assets:
            stats = summarize(document.assets, document.exchange_rate)
            snapshot = take_snapshot(document.history, today, stats, is_automatic=True)
            if snapshot.outcome == "created":
                logger.info("用戶 %s 建立 %s 自動快照", workspace.user_id, snapshot.record.date)
                document = document.model_copy(update={"history": snapshot.history})
                changed = True

        workspace.document = document
        workspace.loaded_on = today
        workspace.phase = LoadPhase.READY
        return changed
