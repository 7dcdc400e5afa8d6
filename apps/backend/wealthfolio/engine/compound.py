"""
複利成長試算

FV = PV * (1 + r) ^ n，逐年列出四捨五入至整數的金額。
年化報酬率限制在 0 ~ 100%，年數 1 ~ 50 年。
"""

from decimal import Decimal, ROUND_HALF_UP, localcontext

from wealthfolio.schemas.portfolio import CompoundPoint, CompoundProjection

DEFAULT_ANNUAL_RATE = Decimal("7")
DEFAULT_YEARS = 10
MAX_ANNUAL_RATE = Decimal("100")
MIN_YEARS = 1
MAX_YEARS = 50

# 2 ^ 50 約 16 位數，再加上本金位數與小數位
_EXTRA_DIGITS = 40


def _round(value: Decimal) -> Decimal:
    return value.quantize(Decimal("1"), rounding=ROUND_HALF_UP)


def project_growth(
    principal: Decimal,
    annual_rate: Decimal = DEFAULT_ANNUAL_RATE,
    years: int = DEFAULT_YEARS,
) -> CompoundProjection:
    """以年化報酬率 annual_rate (%) 試算 0 ~ years 年的本利和"""
    if not principal.is_finite() or principal < 0:
        principal = Decimal("0")
    annual_rate = min(max(annual_rate, Decimal("0")), MAX_ANNUAL_RATE)
    years = min(max(years, MIN_YEARS), MAX_YEARS)

    with localcontext() as ctx:
        ctx.prec = max(ctx.prec, principal.adjusted() + _EXTRA_DIGITS)
        growth = 1 + annual_rate / 100
        points = []
        amount = principal
        for year in range(years + 1):
            points.append(CompoundPoint(year=year, amount=_round(amount)))
            amount *= growth

        final_value = points[-1].amount
        total_growth = final_value - principal

    return CompoundProjection(
        principal=principal,
        annual_rate=annual_rate,
        years=years,
        points=points,
        final_value=final_value,
        total_growth=total_growth,
    )
