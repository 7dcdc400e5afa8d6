"""
匯率提供者

向 exchangerate-api 取得「最新 USD 匯率」，回應中必須包含
正數的 rates.TWD，否則視為失敗，由呼叫端保留原本的匯率。
"""

import logging
from decimal import Decimal, InvalidOperation

import httpx

from wealthfolio.config import get_settings
from wealthfolio.price.base import ProviderError
from wealthfolio.redis_client import cache_get, cache_set

logger = logging.getLogger(__name__)

CACHE_KEY = "fx:USD:TWD"


class ExchangeRateProvider:
    """USD/TWD 匯率來源（1 USD = rate TWD）"""

    def __init__(self, url: str | None = None, transport: httpx.AsyncBaseTransport | None = None):
        settings = get_settings()
        self._url = url or settings.exchange_rate_url
        self._ttl = settings.price_cache_ttl
        self._transport = transport

    async def get_usd_twd(self, force_refresh: bool = False) -> Decimal:
        """
        取得 USD/TWD 匯率

        Raises:
            ProviderError: 網路錯誤或回應格式不符
        """
        if not force_refresh:
            cached = await cache_get(CACHE_KEY)
            if cached:
                return Decimal(cached)

        try:
            async with httpx.AsyncClient(timeout=10.0, transport=self._transport) as client:
                response = await client.get(self._url)
                response.raise_for_status()
                data = response.json()
        except (httpx.HTTPError, ValueError) as e:
            raise ProviderError(f"匯率 API 錯誤: {e}") from e

        rate = self._parse_twd(data)
        await cache_set(CACHE_KEY, str(rate), ttl=self._ttl)
        logger.info("取得最新匯率 USD/TWD = %s", rate)
        return rate

    @staticmethod
    def _parse_twd(data) -> Decimal:
        rates = data.get("rates") if isinstance(data, dict) else None
        raw = rates.get("TWD") if isinstance(rates, dict) else None
        if isinstance(raw, bool) or not isinstance(raw, (int, float, str)):
            raise ProviderError("匯率回應缺少 rates.TWD")
        try:
            rate = Decimal(str(raw))
        except InvalidOperation as e:
            raise ProviderError(f"匯率格式錯誤: {raw}") from e
        if not rate.is_finite() or rate <= 0:
            raise ProviderError(f"匯率數值無效: {raw}")
        return rate
