"""
報價快取

以「資產類型 + 代碼」為 key，將最近一次成功的報價存入
Redis／記憶體快取，TTL 內重複查詢不再呼叫外部 API。
"""

import logging
from datetime import datetime
from decimal import Decimal

from wealthfolio.price.base import PriceData
from wealthfolio.redis_client import cache_get, cache_set
from wealthfolio.schemas.wealth import AssetType

logger = logging.getLogger(__name__)


class QuoteCache:

    def __init__(self, ttl: int, prefix: str = "quote"):
        self.ttl = ttl
        self.prefix = prefix

    def key(self, asset_type: AssetType, symbol: str) -> str:
        return f"{self.prefix}:{asset_type.value}:{symbol.upper()}"

    async def get(self, asset_type: AssetType, symbol: str) -> PriceData | None:
        data = await cache_get(self.key(asset_type, symbol))
        if not data:
            return None
        logger.debug("報價快取命中: %s %s", asset_type.value, symbol)
        return PriceData(
            symbol=data["symbol"],
            price=Decimal(data["price"]),
            currency=data["currency"],
            timestamp=datetime.fromisoformat(data["fetched_at"]),
            source="cache",
        )

    async def put(self, asset_type: AssetType, price: PriceData) -> None:
        # 昨收價只在即時查詢時有意義，不寫入快取
        record = {
            "symbol": price.symbol,
            "price": str(price.price),
            "currency": price.currency,
            "fetched_at": price.timestamp.isoformat(),
        }
        await cache_set(self.key(asset_type, price.symbol), record, ttl=self.ttl)
