"""
資產文件 Schema

定義資產、每月淨值快照、資金投入紀錄與整份用戶文件。
JSON 欄位一律使用 camelCase，金額在 JSON 中輸出為數字。
"""

import enum
import uuid
from datetime import datetime
from decimal import Decimal
from typing import Annotated, Literal

from pydantic import (
    BaseModel, ConfigDict, Field, PlainSerializer, field_validator,
)
from pydantic.alias_generators import to_camel

DEFAULT_EXCHANGE_RATE = Decimal("32.5")

MONTH_PATTERN = r"^\d{4}-(0[1-9]|1[0-2])$"
DATE_PATTERN = r"^\d{4}-\d{2}-\d{2}$"

# 內部運算用 Decimal，輸出 JSON 時轉為數字
Money = Annotated[
    Decimal,
    PlainSerializer(float, return_type=float, when_used="json"),
]


def new_id() -> str:
    return str(uuid.uuid4())


class CamelModel(BaseModel):
    """camelCase 別名的基礎 Schema"""
    model_config = ConfigDict(alias_generator=to_camel, populate_by_name=True)


class AssetType(str, enum.Enum):
    """資產類型，同時決定幣別與估值公式"""
    TW_STOCK = "TW_STOCK"
    US_STOCK = "US_STOCK"
    CASH_TWD = "CASH_TWD"
    CASH_USD = "CASH_USD"
    LOAN_TWD = "LOAN_TWD"

    @property
    def currency(self) -> str:
        return "USD" if "US" in self.value else "TWD"

    @property
    def is_stock(self) -> bool:
        return self in (AssetType.TW_STOCK, AssetType.US_STOCK)

    @property
    def is_cash(self) -> bool:
        return self in (AssetType.CASH_TWD, AssetType.CASH_USD)

    @property
    def is_loan(self) -> bool:
        return self is AssetType.LOAN_TWD


class Sector(str, enum.Enum):
    """產業分類（僅供顯示彙總）"""
    ETF = "ETF"
    SEMICONDUCTOR = "SEMICONDUCTOR"  # 半導體
    TECH = "TECH"                    # 科技
    FINANCE = "FINANCE"              # 金融
    TRADITIONAL = "TRADITIONAL"      # 傳產
    CRYPTO = "CRYPTO"                # 加密貨幣相關
    OTHER = "OTHER"


class AssetFields(CamelModel):
    """資產共用欄位"""
    type: AssetType
    name: str = Field(default="", max_length=100)
    shares: Money = Field(default=Decimal("1"), ge=0)
    cost_basis: Money = Field(default=Decimal("0"), ge=0)
    current_price: Money = Field(default=Decimal("0"), ge=0)
    note: str | None = None
    sector: Sector | None = None
    repayment_day: int | None = Field(default=None, ge=1, le=28)
    monthly_repayment: Money | None = Field(default=None, ge=0)
    last_repayment_month: str | None = Field(default=None, pattern=MONTH_PATTERN)


class Asset(AssetFields):
    """
    單一持有部位或負債

    - 股票：shares 為股數、cost_basis 為平均成本、current_price 為市價
    - 現金：current_price 為帳戶餘額，shares 固定為 1
    - 貸款：current_price 為未償本金，cost_basis 為年利率 (%)
    """
    id: str = Field(default_factory=new_id)

    def normalized(self) -> "Asset":
        """依類型清除不適用的欄位"""
        update: dict = {}
        if not self.type.is_stock:
            update["shares"] = Decimal("1")
            update["sector"] = None
        if not self.type.is_loan:
            update["repayment_day"] = None
            update["monthly_repayment"] = None
            update["last_repayment_month"] = None
        return self.model_copy(update=update)


class AssetCreate(AssetFields):
    """新增資產請求"""
    pass


class AssetUpdate(CamelModel):
    """更新資產請求（僅更新有傳入的欄位）"""
    type: AssetType | None = None
    name: str | None = Field(default=None, max_length=100)
    shares: Money | None = Field(default=None, ge=0)
    cost_basis: Money | None = Field(default=None, ge=0)
    current_price: Money | None = Field(default=None, ge=0)
    note: str | None = None
    sector: Sector | None = None
    repayment_day: int | None = Field(default=None, ge=1, le=28)
    monthly_repayment: Money | None = Field(default=None, ge=0)
    last_repayment_month: str | None = Field(default=None, pattern=MONTH_PATTERN)


class HistoryRecord(CamelModel):
    """單月淨值快照，date (YYYY-MM) 為自然鍵"""
    id: str = Field(default_factory=new_id)
    date: str = Field(pattern=MONTH_PATTERN)
    total_assets: Money = Decimal("0")
    total_liabilities: Money = Decimal("0")
    net_worth: Money = Decimal("0")
    note: str | None = None
    created_at: str | None = Field(default=None, pattern=DATE_PATTERN)
    tw_stocks: Money | None = None
    us_stocks: Money | None = None
    cash: Money | None = None


class HistoryRecordUpdate(CamelModel):
    """手動修正快照（淨值一律重新計算）"""
    date: str | None = Field(default=None, pattern=MONTH_PATTERN)
    total_assets: Money | None = None
    total_liabilities: Money | None = None
    note: str | None = None
    tw_stocks: Money | None = None
    us_stocks: Money | None = None
    cash: Money | None = None


class InvestmentCreate(CamelModel):
    """新增資金投入紀錄"""
    date: str = Field(pattern=MONTH_PATTERN)
    asset_name: str = Field(min_length=1, max_length=100)
    amount: Money = Field(gt=0)
    currency: Literal["TWD", "USD"] = "TWD"
    note: str | None = None


class InvestmentRecord(InvestmentCreate):
    """資金投入紀錄（只增不改，不影響淨值計算）"""
    id: str = Field(default_factory=new_id)


class WealthDocument(CamelModel):
    """每位用戶一份的完整資料文件"""
    assets: list[Asset] = Field(default_factory=list)
    history: list[HistoryRecord] = Field(default_factory=list)
    investments: list[InvestmentRecord] = Field(default_factory=list)
    exchange_rate: Money = DEFAULT_EXCHANGE_RATE
    ai_analysis: str = ""
    last_updated: datetime | None = None

    @field_validator("assets", "history", "investments", mode="before")
    @classmethod
    def _missing_list(cls, v):
        return [] if v is None else v

    @field_validator("exchange_rate", mode="before")
    @classmethod
    def _missing_rate(cls, v):
        if v is None or v == 0:
            return DEFAULT_EXCHANGE_RATE
        return v

    @field_validator("ai_analysis", mode="before")
    @classmethod
    def _missing_text(cls, v):
        return "" if v is None else v
