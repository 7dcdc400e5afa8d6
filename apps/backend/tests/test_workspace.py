"""
工作區載入、延遲寫入與請求序號測試
"""

import asyncio
from datetime import date
from decimal import Decimal

from apscheduler.schedulers.asyncio import AsyncIOScheduler

from conftest import RATE, MemoryStore, RecordingSaver, make_asset
from wealthfolio.engine.snapshot import AUTOMATIC_NOTE
from wealthfolio.schemas.wealth import HistoryRecord, WealthDocument
from wealthfolio.services.persistence import DebouncedSaver
from wealthfolio.services.sequencer import TOPIC_EXCHANGE_RATE, TOPIC_PRICES, RequestSequencer
from wealthfolio.services.workspace import LoadPhase, WorkspaceManager

TODAY = date(2024, 3, 10)


def _manager(store: MemoryStore, saver=None, seed_sample: bool = False) -> WorkspaceManager:
    return WorkspaceManager(
        store,
        saver or RecordingSaver(),
        default_exchange_rate=RATE,
        seed_sample=seed_sample,
        today=lambda: TODAY,
    )


def _loan():
    return make_asset(
        "LOAN_TWD", id="loan", name="房貸",
        current_price=50000, repayment_day=5, monthly_repayment=10000,
    )


# =============================================================================
# 請求序號
# =============================================================================


class TestRequestSequencer:

    def test_only_latest_ticket_is_current(self):
        sequencer = RequestSequencer()

        first = sequencer.issue(TOPIC_PRICES)
        second = sequencer.issue(TOPIC_PRICES)

        assert not sequencer.is_current(TOPIC_PRICES, first)
        assert sequencer.is_current(TOPIC_PRICES, second)

    def test_topics_are_independent(self):
        sequencer = RequestSequencer()

        ticket = sequencer.issue(TOPIC_PRICES)
        sequencer.issue(TOPIC_EXCHANGE_RATE)

        assert sequencer.is_current(TOPIC_PRICES, ticket)


# =============================================================================
# 載入轉換
# =============================================================================


class TestWorkspaceLoad:

    def test_repayment_runs_before_snapshot(self):
        store = MemoryStore({"u1": WealthDocument(assets=[
            make_asset("CASH_TWD", id="cash", name="活存", current_price=100000),
            _loan(),
        ])})
        saver = RecordingSaver()

        workspace = asyncio.run(_manager(store, saver).get("u1"))

        assert workspace.phase is LoadPhase.READY
        loan = next(a for a in workspace.assets if a.id == "loan")
        assert loan.current_price == Decimal("40000")
        assert loan.last_repayment_month == "2024-03"
        assert len(workspace.document.history) == 1
        record = workspace.document.history[0]
        assert record.date == "2024-03"
        assert record.note == AUTOMATIC_NOTE
        assert record.total_liabilities == Decimal("40000")
        assert record.net_worth == Decimal("60000")
        assert saver.scheduled[-1][1] == workspace.document

    def test_existing_month_not_overwritten(self):
        existing = HistoryRecord(id="keep", date="2024-03", total_assets=1, total_liabilities=0, net_worth=1)
        store = MemoryStore({"u1": WealthDocument(
            assets=[make_asset("CASH_TWD", current_price=999)], history=[existing],
        )})
        saver = RecordingSaver()

        workspace = asyncio.run(_manager(store, saver).get("u1"))

        assert workspace.document.history == [existing]
        assert saver.scheduled == []

    def test_empty_document_has_no_snapshot(self):
        store = MemoryStore()

        workspace = asyncio.run(_manager(store).get("new-user"))

        assert workspace.assets == []
        assert workspace.document.history == []
        assert workspace.exchange_rate == RATE

    def test_seed_sample_portfolio(self):
        workspace = asyncio.run(_manager(MemoryStore(), seed_sample=True).get("new-user"))

        names = [a.name for a in workspace.assets]
        assert names[0] == "2330 台積電"
        assert "信用貸款" in names
        assert len(workspace.document.history) == 1

    def test_checks_run_once_per_load(self):
        store = MemoryStore({"u1": WealthDocument(assets=[_loan()])})
        manager = _manager(store)

        async def scenario():
            first = await manager.get("u1")
            manager.commit(first, first.document.model_copy(update={"assets": [_loan()]}))
            second = await manager.get("u1")
            return first, second

        first, second = asyncio.run(scenario())

        assert first is second
        assert second.assets[0].current_price == Decimal("50000")
        assert store.loads == 1

    def test_concurrent_first_access_loads_once(self):
        class SlowStore(MemoryStore):
            async def load(self, user_id):
                await asyncio.sleep(0.01)
                return await super().load(user_id)

        store = SlowStore()
        manager = _manager(store)

        async def scenario():
            return await asyncio.gather(manager.get("u1"), manager.get("u1"), manager.get("u1"))

        results = asyncio.run(scenario())

        assert store.loads == 1
        assert all(ws is results[0] for ws in results)

    def test_commit_sets_last_updated(self):
        manager = _manager(MemoryStore())

        async def scenario():
            workspace = await manager.get("u1")
            manager.commit(workspace, workspace.document.model_copy(update={"ai_analysis": "ok"}))
            return workspace

        workspace = asyncio.run(scenario())

        assert workspace.document.ai_analysis == "ok"
        assert workspace.document.last_updated is not None

    def test_month_rollover_reruns_checks(self):
        store = MemoryStore({"u1": WealthDocument(assets=[_loan()])})
        clock = {"today": date(2024, 3, 10)}
        manager = WorkspaceManager(
            store, RecordingSaver(), default_exchange_rate=RATE, today=lambda: clock["today"],
        )

        async def scenario():
            march = await manager.get("u1")
            march_balance = march.assets[0].current_price
            clock["today"] = date(2024, 4, 10)
            april = await manager.get("u1")
            return march_balance, april

        march_balance, april = asyncio.run(scenario())

        assert march_balance == Decimal("40000")
        assert april.assets[0].current_price == Decimal("30000")
        assert april.assets[0].last_repayment_month == "2024-04"
        assert [r.date for r in april.document.history] == ["2024-03", "2024-04"]
        assert april.document.history[1].total_liabilities == Decimal("30000")
        assert store.loads == 1

    def test_same_day_access_does_not_recheck(self):
        store = MemoryStore({"u1": WealthDocument(assets=[_loan()])})
        saver = RecordingSaver()
        manager = _manager(store, saver)

        async def scenario():
            await manager.get("u1")
            await manager.get("u1")

        asyncio.run(scenario())

        assert len(saver.scheduled) == 1

    def test_idle_workspace_evicted_and_reloaded(self):
        store = MemoryStore({"u1": WealthDocument(assets=[make_asset("CASH_TWD", current_price=100)])})
        manager = _manager(store)

        async def scenario():
            first = await manager.get("u1")
            kept = await manager.evict_idle(3600)
            evicted = await manager.evict_idle(0)
            second = await manager.get("u1")
            return first, second, kept, evicted

        first, second, kept, evicted = asyncio.run(scenario())

        assert kept == 0
        assert evicted == 1
        assert first is not second
        assert store.loads == 2

    def test_workspace_with_unsaved_changes_is_kept(self):
        class BusySaver(RecordingSaver):
            def is_idle(self, user_id):
                return False

            async def flush(self, user_id):
                return True

        manager = _manager(MemoryStore(), BusySaver())

        async def scenario():
            first = await manager.get("u1")
            evicted = await manager.evict_idle(0)
            return first, evicted, await manager.get("u1")

        first, evicted, second = asyncio.run(scenario())

        assert evicted == 0
        assert first is second


# =============================================================================
# 延遲寫入
# =============================================================================


def _doc(rate: str) -> WealthDocument:
    return WealthDocument(exchange_rate=Decimal(rate))


class FlakyStore(MemoryStore):
    def __init__(self, failures: int):
        super().__init__()
        self.failures = failures

    async def save(self, user_id, document):
        if self.failures > 0:
            self.failures -= 1
            raise OSError("disk full")
        await super().save(user_id, document)


class TestDebouncedSaver:

    def test_rapid_edits_coalesce_into_one_write(self):
        store = MemoryStore()

        async def scenario():
            scheduler = AsyncIOScheduler()
            scheduler.start()
            saver = DebouncedSaver(store, scheduler, delay=0.05)
            saver.schedule("u1", _doc("30"))
            saver.schedule("u1", _doc("31"))
            saver.schedule("u1", _doc("32"))
            await asyncio.sleep(0.5)
            scheduler.shutdown(wait=False)

        asyncio.run(scenario())

        assert len(store.saves) == 1
        assert store.saves[0][1].exchange_rate == Decimal("32")

    def test_flush_all_writes_pending_immediately(self):
        store = MemoryStore()

        async def scenario():
            scheduler = AsyncIOScheduler()
            scheduler.start()
            saver = DebouncedSaver(store, scheduler, delay=60)
            saver.schedule("u1", _doc("30"))
            saver.schedule("u2", _doc("31"))
            failed = await saver.flush_all()
            jobs = scheduler.get_jobs()
            scheduler.shutdown(wait=False)
            return failed, jobs, saver.pending_users

        failed, jobs, pending = asyncio.run(scenario())

        assert failed == 0
        assert jobs == []
        assert pending == set()
        assert {user for user, _ in store.saves} == {"u1", "u2"}

    def test_failed_write_stays_pending(self):
        store = FlakyStore(failures=1)

        async def scenario():
            scheduler = AsyncIOScheduler()
            scheduler.start()
            saver = DebouncedSaver(store, scheduler, delay=60)
            saver.schedule("u1", _doc("30"))
            first = await saver.flush("u1")
            pending_after_failure = saver.pending_users
            second = await saver.flush_all()
            scheduler.shutdown(wait=False)
            return first, pending_after_failure, second

        first, pending_after_failure, second = asyncio.run(scenario())

        assert first is False
        assert pending_after_failure == {"u1"}
        assert second == 0
        assert store.documents["u1"].exchange_rate == Decimal("30")

    def test_flush_all_waits_for_in_flight_write(self):
        class SlowStore(MemoryStore):
            async def save(self, user_id, document):
                await asyncio.sleep(0.1)
                await super().save(user_id, document)

        store = SlowStore()

        async def scenario():
            scheduler = AsyncIOScheduler()
            scheduler.start()
            saver = DebouncedSaver(store, scheduler, delay=0)
            saver.schedule("u1", _doc("30"))
            await asyncio.sleep(0.05)
            await saver.flush_all()
            scheduler.shutdown(wait=False)

        asyncio.run(scenario())

        assert [user for user, _ in store.saves] == ["u1"]

    def test_edit_during_slow_write_is_written_afterwards(self):
        class SlowStore(MemoryStore):
            async def save(self, user_id, document):
                await asyncio.sleep(0.3)
                await super().save(user_id, document)

        store = SlowStore()

        async def scenario():
            scheduler = AsyncIOScheduler()
            scheduler.start()
            saver = DebouncedSaver(store, scheduler, delay=0.05)
            saver.schedule("u1", _doc("30"))
            await asyncio.sleep(0.1)
            # 第一筆仍在寫入中
            saver.schedule("u1", _doc("31"))
            await asyncio.sleep(1.0)
            pending = saver.pending_users
            scheduler.shutdown(wait=False)
            return pending

        pending = asyncio.run(scenario())

        assert pending == set()
        assert [doc.exchange_rate for _, doc in store.saves] == [Decimal("30"), Decimal("31")]
        assert store.documents["u1"].exchange_rate == Decimal("31")
