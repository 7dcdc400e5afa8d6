"""
貸款自動還款

每月於還款日（含之後）自動從未償本金扣除月付金額，
以 last_repayment_month 防止同一個月重複扣款。
"""

from dataclasses import dataclass, field
from datetime import date
from decimal import Decimal

from wealthfolio.engine.snapshot import month_key
from wealthfolio.schemas.wealth import Asset


@dataclass
class RepaymentResult:
    assets: list[Asset]
    charged: list[str] = field(default_factory=list)

    @property
    def changed(self) -> bool:
        return bool(self.charged)


def is_due(asset: Asset, today: date) -> bool:
    """判斷貸款本月是否應扣款"""
    if not asset.type.is_loan:
        return False
    if not asset.repayment_day or not asset.monthly_repayment:
        return False
    return (
        today.day >= asset.repayment_day
        and asset.last_repayment_month != month_key(today)
    )


def apply_scheduled_repayments(assets: list[Asset], today: date) -> RepaymentResult:
    """掃描所有貸款，回傳扣款後的新清單（本金最低為 0）"""
    current_month = month_key(today)
    result = RepaymentResult(assets=[])

    for asset in assets:
        if is_due(asset, today):
            balance = max(Decimal("0"), asset.current_price - asset.monthly_repayment)
            asset = asset.model_copy(update={
                "current_price": balance,
                "last_repayment_month": current_month,
            })
            result.charged.append(asset.id)
        result.assets.append(asset)

    return result
