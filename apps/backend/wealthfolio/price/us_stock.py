"""
美股報價（Yahoo Finance）

yfinance 為同步套件，查詢放到預設 executor 執行。
盤後或休市時 last_price 可能為空，改用前一交易日收盤價。
"""

import asyncio
import logging
from decimal import Decimal

import yfinance as yf

from wealthfolio.price.base import PriceData, PriceNotFoundError, PriceProvider, ProviderError

logger = logging.getLogger(__name__)


def _as_decimal(value) -> Decimal | None:
    if value is None:
        return None
    try:
        number = Decimal(str(value))
    except ArithmeticError:
        return None
    return number if number.is_finite() and number > 0 else None


class USStockProvider(PriceProvider):

    currency = "USD"

    async def get_current_price(self, symbol: str) -> PriceData:
        loop = asyncio.get_running_loop()
        try:
            last, previous = await loop.run_in_executor(None, self._read_fast_info, symbol)
        except PriceNotFoundError:
            raise
        except Exception as e:
            raise ProviderError(f"Yahoo Finance 錯誤: {e}") from e

        price = last or previous
        if price is None:
            raise PriceNotFoundError(f"找不到 {symbol} 的報價")

        return PriceData(
            symbol=symbol.upper(),
            price=price.quantize(Decimal("0.0001")),
            currency=self.currency,
            previous_close=previous,
            source="yahoo_finance",
        )

    @staticmethod
    def _read_fast_info(symbol: str) -> tuple[Decimal | None, Decimal | None]:
        info = yf.Ticker(symbol).fast_info
        try:
            return _as_decimal(info.last_price), _as_decimal(info.previous_close)
        except KeyError as e:
            # 無效代碼時 fast_info 取值會丟出 KeyError
            raise PriceNotFoundError(f"找不到 {symbol} 的報價") from e
