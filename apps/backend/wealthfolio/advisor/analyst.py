"""
AI 投資組合分析

將目前顯示中的資產與匯率整理成提示詞，呼叫 OpenAI 產生
繁體中文 Markdown 分析。此功能為輔助性質：未設定金鑰或
呼叫失敗時回傳固定訊息，不會拋出例外。
"""

import asyncio
import logging
from decimal import Decimal

from openai import OpenAI

from wealthfolio.config import get_settings
from wealthfolio.engine.valuation import asset_value_native
from wealthfolio.schemas.wealth import Asset

logger = logging.getLogger(__name__)

SYSTEM_INSTRUCTION = """
你是專業的財務投資顧問。
你的目標是分析用戶的股票和現金投資組合。
用戶持有台股 (TW_STOCK)、美股 (US_STOCK)、現金與貸款。
請使用「繁體中文」回答。
輸出格式請使用簡潔的 Markdown。
重點分析：
1. 資產配置平衡 (股票 vs 現金)。
2. 產業集中度 (根據代碼如 2330, AAPL, NVDA 猜測產業)。
3. 潛在風險 (例如：過度集中在科技股、負債比過高)。
4. 針對目前的市場趨勢提供一段簡短的建議。
5. 簡短的鼓勵性總結。
請保持在 400 字以內。適當使用表情符號。
"""

MISSING_KEY_MESSAGE = (
    "⚠️ 尚未設定 API Key。\n\n"
    "如需使用 AI 分析功能，請確認環境變數中已包含 `OPENAI_API_KEY`。"
)
FAILURE_MESSAGE = "連線 AI 服務發生錯誤，請檢查您的 API Key 或稍後再試。"
EMPTY_MESSAGE = "目前無法產生分析報告。"


def build_prompt(assets: list[Asset], exchange_rate: Decimal) -> str:
    """每筆資產以原幣價值列出"""
    lines = []
    for asset in assets:
        value = asset_value_native(asset)
        lines.append(f"- [{asset.type.value}] {asset.name}: {value:.2f} {asset.type.currency}")
    portfolio_desc = "\n".join(lines)

    return (
        f"這是我的目前投資組合配置。匯率為 1 美元 = {exchange_rate} 台幣。\n\n"
        f"{portfolio_desc}\n\n"
        "請分析我的投資組合結構並提供專業建議。"
    )


class PortfolioAdvisor:
    """OpenAI 投資組合分析"""

    def __init__(
        self,
        api_key: str | None = None,
        model: str | None = None,
        client: OpenAI | None = None,
        temperature: float = 0.7,
    ):
        settings = get_settings()
        self._api_key = api_key if api_key is not None else settings.openai_api_key
        self._model = model or settings.openai_model
        self._client = client
        self._temperature = temperature

    @property
    def configured(self) -> bool:
        return bool(self._client or self._api_key)

    async def analyze(self, assets: list[Asset], exchange_rate: Decimal) -> str:
        """回傳 Markdown 分析；失敗時回傳固定訊息"""
        if not self.configured:
            return MISSING_KEY_MESSAGE

        prompt = build_prompt(assets, exchange_rate)
        try:
            loop = asyncio.get_running_loop()
            text = await loop.run_in_executor(None, self._complete, prompt)
        except Exception as e:
            logger.error("AI 分析失敗: %s", e)
            return FAILURE_MESSAGE

        return text or EMPTY_MESSAGE

    def _complete(self, prompt: str) -> str:
        client = self._client or OpenAI(api_key=self._api_key)
        resp = client.chat.completions.create(
            model=self._model,
            messages=[
                {"role": "system", "content": SYSTEM_INSTRUCTION.strip()},
                {"role": "user", "content": prompt},
            ],
            temperature=self._temperature,
        )
        return (resp.choices[0].message.content or "").strip()
