"""
投資組合估值相關 Schema

定義淨值摘要、資產配置、分類明細、產業分布、
複利試算與再平衡試算的回應模型。
"""

from typing import Literal

from pydantic import Field

from wealthfolio.schemas.wealth import Asset, AssetType, CamelModel, Money, Sector

CategoryBucket = Literal["STOCKS", "CASH", "LIABILITIES"]
MarketTab = Literal["ALL", "TW", "US"]


class AllocationSlice(CamelModel):
    """圓餅圖單一區塊"""
    name: str
    value: Money


class ValuationSummary(CamelModel):
    """淨值摘要（皆以 TWD 計價）"""
    total_assets: Money
    total_liabilities: Money
    net_worth: Money
    net_worth_usd: Money
    debt_ratio: Money
    tw_stocks: Money
    us_stocks: Money
    cash: Money
    category_allocation: list[AllocationSlice]
    asset_allocation: list[AllocationSlice]
    exchange_rate: Money


class CategoryRow(CamelModel):
    """分類清單中的單一資產（含佔比與未實現損益）"""
    asset: Asset
    currency: str
    value_twd: Money
    percent_of_category: Money
    gain: Money
    gain_percent: Money


class CategoryView(CamelModel):
    """單一分類（股票／現金／負債）的明細"""
    bucket: CategoryBucket
    market: MarketTab
    total_value_twd: Money
    rows: list[CategoryRow]


class SectorSlice(CamelModel):
    """產業分布"""
    sector: Sector
    value: Money
    percentage: Money


class CompoundPoint(CamelModel):
    year: int
    amount: Money


class CompoundProjection(CamelModel):
    """複利成長試算結果"""
    principal: Money
    annual_rate: Money
    years: int
    points: list[CompoundPoint]
    final_value: Money
    total_growth: Money


class RebalancePlan(CamelModel):
    """單一持股調整至目標比重的試算"""
    asset_id: str
    asset_name: str
    asset_type: AssetType
    currency_symbol: str
    total_assets_twd: Money
    current_value_twd: Money
    current_percent: Money
    target_percent: Money
    target_value_twd: Money
    gap_twd: Money
    gap_in_currency: Money
    required_shares: Money
    is_buy: bool


class PriceRefreshItem(CamelModel):
    """批次更新股價時，單一資產的結果"""
    asset_id: str
    name: str
    updated: bool
    price: Money | None = None
    message: str | None = None


class PriceRefreshResult(CamelModel):
    updated: int
    failed: int
    items: list[PriceRefreshItem] = Field(default_factory=list)


class QuoteResponse(CamelModel):
    """單一標的報價（新增資產時帶入）"""
    name: str
    symbol: str
    type: AssetType
    price: Money
    source: str


class SectorGuess(CamelModel):
    name: str
    sector: Sector
