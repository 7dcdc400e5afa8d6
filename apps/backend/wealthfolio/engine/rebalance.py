"""
持股比重再平衡試算

以「目前總資產」（不含負債）為基準，計算單一持股要調整到
目標比重時，需要買入或減持的金額與股數。
"""

from decimal import Decimal

from wealthfolio.engine.valuation import ZERO, asset_value_twd, safe_percent
from wealthfolio.schemas.portfolio import RebalancePlan
from wealthfolio.schemas.wealth import Asset, AssetType


def plan_rebalance(
    assets: list[Asset],
    exchange_rate: Decimal,
    asset_id: str,
    target_percent: Decimal,
) -> RebalancePlan | None:
    """找不到持股、非股票或總資產為 0 時回傳 None"""
    total_assets = sum(
        (asset_value_twd(a, exchange_rate) for a in assets if not a.type.is_loan),
        ZERO,
    )
    asset = next((a for a in assets if a.id == asset_id and a.type.is_stock), None)
    if asset is None or total_assets == 0:
        return None

    is_us = asset.type is AssetType.US_STOCK
    current_value = asset_value_twd(asset, exchange_rate)
    target_value = total_assets * target_percent / 100
    gap_twd = target_value - current_value

    if is_us:
        gap_in_currency = gap_twd / exchange_rate if exchange_rate > 0 else ZERO
    else:
        gap_in_currency = gap_twd
    required_shares = gap_in_currency / asset.current_price if asset.current_price > 0 else ZERO

    return RebalancePlan(
        asset_id=asset.id,
        asset_name=asset.name,
        asset_type=asset.type,
        currency_symbol="US$" if is_us else "NT$",
        total_assets_twd=total_assets,
        current_value_twd=current_value,
        current_percent=safe_percent(current_value, total_assets),
        target_percent=target_percent,
        target_value_twd=target_value,
        gap_twd=gap_twd,
        gap_in_currency=gap_in_currency,
        required_shares=required_shares,
        is_buy=gap_twd > 0,
    )
