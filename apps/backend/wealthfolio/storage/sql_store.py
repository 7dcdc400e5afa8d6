"""
資料庫文件儲存（雲端）

以 wealth_documents 資料表保存，每位用戶一筆。
"""

import logging

from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.ext.asyncio import AsyncSession, async_sessionmaker

from wealthfolio.models.wealth_document import WealthDocumentRow
from wealthfolio.schemas.wealth import WealthDocument
from wealthfolio.storage.base import DocumentStore, StorageError

logger = logging.getLogger(__name__)


class SqlDocumentStore(DocumentStore):

    def __init__(self, session_factory: async_sessionmaker[AsyncSession]):
        self._session_factory = session_factory

    async def load(self, user_id: str) -> WealthDocument | None:
        try:
            async with self._session_factory() as session:
                row = await session.get(WealthDocumentRow, user_id)
        except SQLAlchemyError as e:
            raise StorageError(f"讀取文件失敗: {e}") from e

        if row is None:
            return None

        return WealthDocument.model_validate({
            "assets": row.assets,
            "history": row.history,
            "investments": row.investments,
            "exchangeRate": row.exchange_rate,
            "aiAnalysis": row.ai_analysis,
            "lastUpdated": row.last_updated,
        })

    async def save(self, user_id: str, document: WealthDocument) -> None:
        payload = document.model_dump(mode="json", by_alias=True)
        try:
            async with self._session_factory() as session:
                row = await session.get(WealthDocumentRow, user_id)
                if row is None:
                    row = WealthDocumentRow(user_id=user_id)
                    session.add(row)
                row.assets = payload["assets"]
                row.history = payload["history"]
                row.investments = payload["investments"]
                row.exchange_rate = document.exchange_rate
                row.ai_analysis = document.ai_analysis
                row.last_updated = document.last_updated
                await session.commit()
        except SQLAlchemyError as e:
            raise StorageError(f"寫入文件失敗: {e}") from e

        logger.debug("文件已寫入資料庫: user=%s", user_id)
