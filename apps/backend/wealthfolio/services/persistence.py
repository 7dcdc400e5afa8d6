"""
延遲寫入 (Debounced Persistence)

每次修改只排程一個 APScheduler 單次工作，時間窗內的多次修改
合併為一次寫入；以 job id 區分用戶，重新排程會取代尚未執行的工作。

到期的工作只負責喚醒該用戶的寫入任務，實際寫入在寫入任務中
依序進行：寫入期間若又有新版本，寫完後接著寫最新版本，
同一用戶不會同時有兩筆寫入。
寫入失敗時保留待寫狀態，等下一次排程或關閉時再寫。
"""

import asyncio
import logging
from datetime import datetime, timedelta, timezone

from apscheduler.jobstores.base import JobLookupError
from apscheduler.schedulers.asyncio import AsyncIOScheduler

from wealthfolio.schemas.wealth import WealthDocument
from wealthfolio.storage.base import DocumentStore

logger = logging.getLogger(__name__)


def _job_id(user_id: str) -> str:
    return f"persist:{user_id}"


class DebouncedSaver:

    def __init__(self, store: DocumentStore, scheduler: AsyncIOScheduler, delay: float = 1.0):
        self._store = store
        self._scheduler = scheduler
        self._delay = max(delay, 0.0)
        self._pending: dict[str, WealthDocument] = {}
        self._writers: dict[str, asyncio.Task] = {}

    @property
    def pending_users(self) -> set[str]:
        return set(self._pending)

    def is_idle(self, user_id: str) -> bool:
        """沒有待寫文件也沒有進行中的寫入"""
        return user_id not in self._pending and user_id not in self._writers

    def schedule(self, user_id: str, document: WealthDocument) -> None:
        """記錄最新文件並（重新）排程寫入"""
        self._pending[user_id] = document
        run_at = datetime.now(timezone.utc) + timedelta(seconds=self._delay)
        self._scheduler.add_job(
            self._on_due,
            trigger="date",
            run_date=run_at,
            args=[user_id],
            id=_job_id(user_id),
            replace_existing=True,
            misfire_grace_time=None,
        )

    async def _on_due(self, user_id: str) -> None:
        # 立即返回，讓同一 job id 的下一次排程不會因執行中而被略過
        self._ensure_writer(user_id)

    def _ensure_writer(self, user_id: str) -> asyncio.Task | None:
        writer = self._writers.get(user_id)
        if writer is not None and not writer.done():
            return writer
        if user_id not in self._pending:
            return None
        writer = asyncio.get_running_loop().create_task(self._drain(user_id))
        self._writers[user_id] = writer
        writer.add_done_callback(lambda task: self._forget_writer(user_id, task))
        return writer

    def _forget_writer(self, user_id: str, task: asyncio.Task) -> None:
        if self._writers.get(user_id) is task:
            del self._writers[user_id]

    async def _drain(self, user_id: str) -> bool:
        while user_id in self._pending:
            if not await self._persist(user_id):
                return False
        return True

    async def _persist(self, user_id: str) -> bool:
        document = self._pending.pop(user_id, None)
        if document is None:
            return True

        try:
            await self._store.save(user_id, document)
        except asyncio.CancelledError:
            self._pending.setdefault(user_id, document)
            raise
        except Exception as e:
            logger.error("寫入用戶 %s 資料失敗: %s", user_id, e)
            # 期間若有更新的版本，以新版本為準
            self._pending.setdefault(user_id, document)
            return False

        logger.info("用戶 %s 資料已儲存 (%d 筆資產)", user_id, len(document.assets))
        return True

    async def flush(self, user_id: str) -> bool:
        """立即寫入單一用戶的待寫文件（等待進行中的寫入完成）"""
        if self._scheduler.running:
            try:
                self._scheduler.remove_job(_job_id(user_id))
            except JobLookupError:
                pass
        running = self._writers.get(user_id)
        if running is not None:
            await asyncio.gather(running, return_exceptions=True)
        # 經由寫入任務執行，確保同一用戶仍只有一筆寫入
        writer = self._ensure_writer(user_id)
        if writer is None:
            return True
        return await writer

    async def flush_all(self) -> int:
        """等待進行中的寫入，再立即寫入全部待寫文件，回傳失敗筆數"""
        if self._writers:
            await asyncio.gather(*self._writers.values(), return_exceptions=True)

        failed = 0
        for user_id in list(self._pending):
            if not await self.flush(user_id):
                failed += 1
        if self._pending:
            logger.warning("仍有 %d 位用戶資料未寫入", failed)
        return failed
