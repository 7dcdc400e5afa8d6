"""
台股報價

優先使用 twstock 即時報價；查詢失敗、ETF 無資料或尚未成交時，
改查證交所 MIS 公開 API（先上市 tse，再上櫃 otc）。
"""

import asyncio
import logging
from decimal import Decimal, InvalidOperation

import httpx
import twstock

from wealthfolio.price.base import PriceData, PriceNotFoundError, PriceProvider, ProviderError

logger = logging.getLogger(__name__)

TWSE_QUOTE_URL = "https://mis.twse.com.tw/stock/api/getStockInfo.jsp"
TWSE_MARKETS = ("tse", "otc")


def _to_decimal(raw: str | None) -> Decimal:
    """證交所價格字串轉 Decimal；空白、'-' 或無法解析時為 0"""
    cleaned = (raw or "").strip().replace(",", "")
    if not cleaned or cleaned == "-":
        return Decimal("0")
    try:
        return Decimal(cleaned)
    except InvalidOperation:
        return Decimal("0")


class TWStockProvider(PriceProvider):

    currency = "TWD"

    def __init__(self, timeout: float = 10.0):
        self.timeout = timeout

    async def get_current_price(self, symbol: str) -> PriceData:
        stock_id = symbol.upper().removesuffix(".TWO").removesuffix(".TW")
        loop = asyncio.get_running_loop()
        try:
            return await loop.run_in_executor(None, self._lookup, stock_id)
        except (PriceNotFoundError, ProviderError):
            raise
        except Exception as e:
            raise ProviderError(f"台股報價錯誤: {e}") from e

    def _lookup(self, stock_id: str) -> PriceData:
        quote = self._from_twstock(stock_id)
        if quote is not None:
            return quote
        logger.warning("twstock 無 %s 成交價，改查 TWSE", stock_id)
        return self._from_twse(stock_id)

    def _from_twstock(self, stock_id: str) -> PriceData | None:
        try:
            result = twstock.realtime.get(stock_id)
        except Exception as e:
            logger.warning("twstock 查詢 %s 異常: %s", stock_id, e)
            return None
        if not result or not result.get("success"):
            return None

        realtime = result.get("realtime") or {}
        price = _to_decimal(realtime.get("latest_trade_price"))
        if price <= 0:
            return None
        # twstock 即時資料沒有昨收，以開盤價作為漲跌基準
        opening = _to_decimal(realtime.get("open"))
        return PriceData(
            symbol=stock_id,
            price=price,
            currency=self.currency,
            previous_close=opening or None,
            source="twstock",
        )

    def _from_twse(self, stock_id: str) -> PriceData:
        for market in TWSE_MARKETS:
            try:
                resp = httpx.get(
                    TWSE_QUOTE_URL,
                    params={"ex_ch": f"{market}_{stock_id}.tw"},
                    timeout=self.timeout,
                )
                resp.raise_for_status()
                rows = resp.json().get("msgArray") or []
            except (httpx.HTTPError, ValueError) as e:
                raise ProviderError(f"TWSE API 錯誤: {e}") from e

            if not rows:
                continue

            row = rows[0]
            previous = _to_decimal(row.get("y"))
            # z 為最近成交價，尚未成交時是 "-"
            price = _to_decimal(row.get("z")) or previous
            if price <= 0:
                break
            return PriceData(
                symbol=stock_id,
                price=price,
                currency=self.currency,
                previous_close=previous or None,
                source="twse",
            )

        raise PriceNotFoundError(f"找不到台股 {stock_id}")
