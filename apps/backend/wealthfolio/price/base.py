"""
報價來源介面

台股與美股提供者都回傳 PriceData；價格以標的原幣計價
（台股 TWD、美股 USD），換算台幣由估值引擎負責。
"""

from abc import ABC, abstractmethod
from dataclasses import dataclass, field
from datetime import datetime
from decimal import Decimal


class PriceNotFoundError(Exception):
    """查無報價（代碼錯誤、無成交價或不支援的資產類型）"""


class ProviderError(Exception):
    """外部報價服務呼叫失敗"""


@dataclass(frozen=True)
class PriceData:
    symbol: str
    price: Decimal
    currency: str
    timestamp: datetime = field(default_factory=datetime.now)
    previous_close: Decimal | None = None
    source: str = ""

    @property
    def is_valid(self) -> bool:
        """0、負數或缺漏的價格不可寫入資產"""
        return self.price is not None and self.price.is_finite() and self.price > 0

    @property
    def change(self) -> Decimal | None:
        if not self.previous_close:
            return None
        return self.price - self.previous_close

    @property
    def change_pct(self) -> Decimal | None:
        if not self.previous_close:
            return None
        return self.change / self.previous_close * 100


class PriceProvider(ABC):
    """單一市場的報價來源，symbol 為已解析過的代碼（2330、NVDA）"""

    currency: str = "TWD"

    @abstractmethod
    async def get_current_price(self, symbol: str) -> PriceData:
        """
        Raises:
            PriceNotFoundError: 查無此代碼或無有效價格
            ProviderError: 網路或第三方服務錯誤
        """
