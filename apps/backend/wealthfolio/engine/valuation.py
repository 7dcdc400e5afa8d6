"""
估值引擎

將資產清單與匯率（1 USD = rate TWD）換算為 TWD 價值。
全部為純函式：不讀寫資料庫、不呼叫外部 API，每次重新計算。

估值公式：
- TW_STOCK：shares * current_price
- US_STOCK：shares * current_price * rate
- CASH_TWD：current_price
- CASH_USD：current_price * rate
- LOAN_TWD：current_price（負債，從淨值中扣除）
"""

from collections.abc import Iterable
from decimal import Decimal

from wealthfolio.schemas.portfolio import (
    AllocationSlice, CategoryBucket, CategoryRow, CategoryView,
    MarketTab, SectorSlice, ValuationSummary,
)
from wealthfolio.schemas.wealth import Asset, AssetType, Sector

ZERO = Decimal("0")

# 無任何資產時，圓餅圖顯示單一灰色區塊
EMPTY_ALLOCATION = AllocationSlice(name="無資產", value=Decimal("1"))

CATEGORY_NAMES: dict[str, str] = {
    "tw_stocks": "台股",
    "us_stocks": "美股",
    "cash": "現金",
}


def safe_percent(part: Decimal, whole: Decimal) -> Decimal:
    """計算百分比；分母為 0 時回傳 0"""
    if not whole:
        return ZERO
    return part / whole * 100


def asset_value_native(asset: Asset) -> Decimal:
    """原幣價值（股票為股數乘市價，現金與貸款為餘額）"""
    if asset.type.is_stock:
        return asset.shares * asset.current_price
    return asset.current_price


def asset_value_twd(asset: Asset, exchange_rate: Decimal) -> Decimal:
    """換算為 TWD 的價值；美元資產只乘一次匯率"""
    value = asset_value_native(asset)
    if asset.type.currency == "USD":
        value *= exchange_rate
    return value


def unrealized_gain(asset: Asset) -> tuple[Decimal, Decimal]:
    """
    未實現損益（原幣）與報酬率 (%)

    僅股票有損益；現金與貸款回傳 (0, 0)。
    """
    if not asset.type.is_stock:
        return ZERO, ZERO
    cost = asset.shares * asset.cost_basis
    gain = asset.shares * (asset.current_price - asset.cost_basis)
    return gain, safe_percent(gain, cost)


def filter_visible(
    assets: Iterable[Asset], show_tw_stocks: bool = True, show_us_stocks: bool = True
) -> list[Asset]:
    """總覽頁的台股／美股顯示切換"""
    visible = []
    for asset in assets:
        if asset.type is AssetType.TW_STOCK and not show_tw_stocks:
            continue
        if asset.type is AssetType.US_STOCK and not show_us_stocks:
            continue
        visible.append(asset)
    return visible


def summarize(assets: Iterable[Asset], exchange_rate: Decimal) -> ValuationSummary:
    """
    計算淨值摘要

    - 總資產：所有非貸款資產的 TWD 價值
    - 總負債：所有貸款的未償本金
    - 淨值 = 總資產 - 總負債
    - 負債比 = 總負債 / 總資產 * 100（總資產為 0 時為 0）
    """
    tw_stocks = us_stocks = cash = loans = ZERO
    asset_slices: list[AllocationSlice] = []

    for asset in assets:
        value = asset_value_twd(asset, exchange_rate)
        if asset.type is AssetType.TW_STOCK:
            tw_stocks += value
        elif asset.type is AssetType.US_STOCK:
            us_stocks += value
        elif asset.type.is_cash:
            cash += value
        else:
            loans += value
            continue
        asset_slices.append(AllocationSlice(name=asset.name, value=value))

    total_assets = tw_stocks + us_stocks + cash
    net_worth = total_assets - loans
    asset_slices.sort(key=lambda s: s.value, reverse=True)

    return ValuationSummary(
        total_assets=total_assets,
        total_liabilities=loans,
        net_worth=net_worth,
        net_worth_usd=net_worth / exchange_rate if exchange_rate > 0 else ZERO,
        debt_ratio=safe_percent(loans, total_assets),
        tw_stocks=tw_stocks,
        us_stocks=us_stocks,
        cash=cash,
        category_allocation=[
            AllocationSlice(name=CATEGORY_NAMES["tw_stocks"], value=tw_stocks),
            AllocationSlice(name=CATEGORY_NAMES["us_stocks"], value=us_stocks),
            AllocationSlice(name=CATEGORY_NAMES["cash"], value=cash),
        ],
        asset_allocation=asset_slices or [EMPTY_ALLOCATION],
        exchange_rate=exchange_rate,
    )


def in_bucket(asset: Asset, bucket: CategoryBucket) -> bool:
    if bucket == "STOCKS":
        return asset.type.is_stock
    if bucket == "CASH":
        return asset.type.is_cash
    return asset.type.is_loan


def _in_market(asset: Asset, market: MarketTab) -> bool:
    if market == "TW":
        return asset.type is AssetType.TW_STOCK
    if market == "US":
        return asset.type is AssetType.US_STOCK
    return True


def category_view(
    assets: Iterable[Asset],
    exchange_rate: Decimal,
    bucket: CategoryBucket,
    market: MarketTab = "ALL",
) -> CategoryView:
    """
    分類清單（股票／現金／負債）

    佔比以「整個分類」的 TWD 總值為分母；股票分頁切換台股或美股時，
    分母仍是全部股票，不會因分頁而改變。
    """
    members = [a for a in assets if in_bucket(a, bucket)]
    total = sum((asset_value_twd(a, exchange_rate) for a in members), ZERO)

    rows = []
    for asset in members:
        if bucket == "STOCKS" and not _in_market(asset, market):
            continue
        value = asset_value_twd(asset, exchange_rate)
        gain, gain_percent = unrealized_gain(asset)
        rows.append(CategoryRow(
            asset=asset,
            currency=asset.type.currency,
            value_twd=value,
            percent_of_category=safe_percent(value, total),
            gain=gain,
            gain_percent=gain_percent,
        ))

    return CategoryView(
        bucket=bucket,
        market=market if bucket == "STOCKS" else "ALL",
        total_value_twd=total,
        rows=rows,
    )


def sector_allocation(assets: Iterable[Asset], exchange_rate: Decimal) -> list[SectorSlice]:
    """股票依產業彙總（未標記者歸類為 OTHER），依價值由大到小排序"""
    totals: dict[Sector, Decimal] = {}
    for asset in assets:
        if not asset.type.is_stock:
            continue
        sector = asset.sector or Sector.OTHER
        totals[sector] = totals.get(sector, ZERO) + asset_value_twd(asset, exchange_rate)

    grand_total = sum(totals.values(), ZERO)
    slices = [
        SectorSlice(sector=sector, value=value, percentage=safe_percent(value, grand_total))
        for sector, value in totals.items()
    ]
    slices.sort(key=lambda s: s.value, reverse=True)
    return slices
