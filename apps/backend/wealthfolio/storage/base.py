"""
資料文件儲存抽象類別

每位用戶一份 WealthDocument；雲端（資料庫）與本機（JSON 檔）
兩種儲存方式皆實作此介面。寫入採「最後寫入者為準」。
"""

from abc import ABC, abstractmethod

from wealthfolio.schemas.wealth import WealthDocument


class DocumentStore(ABC):
    """用戶資料文件儲存"""

    @abstractmethod
    async def load(self, user_id: str) -> WealthDocument | None:
        """讀取文件；尚未建立時回傳 None"""
        ...

    @abstractmethod
    async def save(self, user_id: str, document: WealthDocument) -> None:
        """整份覆寫文件"""
        ...


class StorageError(Exception):
    """讀寫文件失敗"""
    pass
