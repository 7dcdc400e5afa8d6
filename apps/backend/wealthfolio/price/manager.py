"""
報價管理器

統一入口，根據資產類型自動路由到對應的 PriceProvider。
整合快取邏輯：先查快取，過期才呼叫 Provider 取得最新報價。
"""

import asyncio
import logging
import re

from wealthfolio.config import get_settings
from wealthfolio.price.base import PriceData, PriceNotFoundError, PriceProvider, ProviderError
from wealthfolio.price.cache import QuoteCache
from wealthfolio.price.tw_stock import TWStockProvider
from wealthfolio.price.us_stock import USStockProvider
from wealthfolio.schemas.wealth import Asset, AssetType

logger = logging.getLogger(__name__)

_TW_CODE = re.compile(r"(\d{4,})")


def parse_ticker(name: str, asset_type: AssetType) -> str:
    """
    由資產名稱解析報價代碼

    - 台股：取第一段 4 碼以上數字（"2330 台積電" -> "2330"），
      找不到數字時原樣使用
    - 美股：取第一個字並轉大寫（"NVDA Corp" -> "NVDA"）
    """
    text = name.strip()
    if asset_type is AssetType.TW_STOCK:
        match = _TW_CODE.search(text)
        return match.group(1) if match else text
    return text.split(" ")[0].upper() if text else ""


class PriceManager:
    """
    報價管理器

    使用方式：
        manager = PriceManager()
        price = await manager.get_price("2330 台積電", AssetType.TW_STOCK)
    """

    def __init__(self, providers: dict[AssetType, PriceProvider] | None = None):
        settings = get_settings()
        self._providers = providers or {
            AssetType.TW_STOCK: TWStockProvider(),
            AssetType.US_STOCK: USStockProvider(),
        }
        self._cache = QuoteCache(settings.price_cache_ttl)
        self._fetching: dict[str, asyncio.Future] = {}

    async def get_price(
        self, name: str, asset_type: AssetType, force_refresh: bool = False
    ) -> PriceData:
        """
        取得即時報價（含快取邏輯）

        流程：
        1. 先查快取
        2. 快取過期 → 呼叫對應 Provider
        3. 取得新報價後寫入快取

        價格為 0、負數或缺漏一律視為失敗，不會回傳 0 元報價。

        Raises:
            PriceNotFoundError: 非股票類型、代碼無法解析或查無報價
            ProviderError: API 呼叫失敗
        """
        provider = self._providers.get(asset_type)
        if not provider:
            raise PriceNotFoundError(f"{asset_type.value} 不支援報價查詢")

        symbol = parse_ticker(name, asset_type)
        if not symbol:
            raise PriceNotFoundError("未提供標的代碼")

        provider_name = asset_type.value.lower()

        if not force_refresh:
            cached = await self._cache.get(asset_type, symbol)
            if cached:
                return cached

        # Singleflight: 相同標的已有請求進行中時，直接等待該請求結果
        flight_key = f"{provider_name}:{symbol}"
        if flight_key in self._fetching:
            logger.info("等待進行中的報價請求: %s (%s)", symbol, provider_name)
            return await asyncio.shield(self._fetching[flight_key])

        future: asyncio.Future = asyncio.get_running_loop().create_future()
        self._fetching[flight_key] = future

        try:
            logger.info("快取未命中，正在取得 %s (%s) 報價...", symbol, provider_name)
            price = await provider.get_current_price(symbol)
            if not price.is_valid:
                raise PriceNotFoundError(f"{symbol} 報價無效: {price.price}")

            await self._cache.put(asset_type, price)
            future.set_result(price)
            return price
        except asyncio.CancelledError:
            # 發起者被取消時，讓等待中的請求以失敗結束，不會永遠等待
            future.set_exception(ProviderError(f"{symbol} 報價請求已取消"))
            future.exception()
            raise
        except Exception as e:
            future.set_exception(e)
            # 沒有其他等待者時，避免 "exception was never retrieved" 警告
            future.exception()
            raise
        finally:
            self._fetching.pop(flight_key, None)

    async def get_quote(self, name: str, asset_type: AssetType) -> PriceData | None:
        """取得報價；任何失敗都回傳 None（代表「無法取得」）"""
        try:
            return await self.get_price(name, asset_type, force_refresh=True)
        except Exception as e:
            logger.warning("取得 %s 報價失敗: %s", name, e)
            return None

    async def fetch_many(
        self, assets: list[Asset]
    ) -> dict[str, PriceData | BaseException]:
        """
        同時查詢多筆股票資產的報價

        每筆獨立進行，單筆失敗不影響其他資產。

        Returns:
            {asset_id: PriceData 或 例外}
        """
        stocks = [a for a in assets if a.type.is_stock]
        results = await asyncio.gather(
            *(self.get_price(a.name, a.type, force_refresh=True) for a in stocks),
            return_exceptions=True,
        )
        return {asset.id: result for asset, result in zip(stocks, results)}
