"""
匯率與 AI 分析 Schema
"""

from decimal import Decimal

from pydantic import Field

from wealthfolio.schemas.wealth import CamelModel, Money


class ExchangeRateResponse(CamelModel):
    """USD/TWD 匯率（1 USD = rate TWD）"""
    rate: Money
    updated: bool = False
    message: str = "OK"


class ExchangeRateUpdate(CamelModel):
    """手動設定匯率"""
    rate: Money = Field(gt=Decimal("0"))


class AdvisorResponse(CamelModel):
    """AI 投資組合分析"""
    analysis: str
    updated: bool = False
    message: str = "OK"
