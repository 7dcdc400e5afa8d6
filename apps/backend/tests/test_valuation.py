"""
估值引擎測試

涵蓋：單筆資產價值與損益、淨值摘要、分類明細佔比、產業分布。
"""

from decimal import Decimal

from conftest import RATE, assert_decimal_equal, make_asset, sample_assets
from wealthfolio.engine.valuation import (
    EMPTY_ALLOCATION, asset_value_twd, category_view, filter_visible,
    safe_percent, sector_allocation, summarize, unrealized_gain,
)
from wealthfolio.schemas.wealth import AssetType, Sector


# =============================================================================
# 單筆資產
# =============================================================================


class TestAssetValue:

    def test_tw_stock_gain(self):
        asset = make_asset("TW_STOCK", name="2330 台積電", shares=1000, cost_basis=600, current_price=1450)

        gain, gain_percent = unrealized_gain(asset)

        assert gain == Decimal("850000")
        assert_decimal_equal(gain_percent, "141.67")
        assert asset_value_twd(asset, RATE) == Decimal("1450000")

    def test_us_stock_converted_once(self):
        asset = make_asset("US_STOCK", name="NVDA", shares=20, cost_basis=450, current_price=Decimal("181.46"))

        assert asset_value_twd(asset, RATE) == Decimal("117949.000")

    def test_cash_and_loan_use_balance(self):
        usd = make_asset("CASH_USD", current_price=3000)
        twd = make_asset("CASH_TWD", current_price=500000)
        loan = make_asset("LOAN_TWD", current_price=800000, cost_basis=Decimal("2.5"))

        assert asset_value_twd(usd, RATE) == Decimal("97500.0")
        assert asset_value_twd(twd, RATE) == Decimal("500000")
        assert asset_value_twd(loan, RATE) == Decimal("800000")
        assert unrealized_gain(loan) == (Decimal("0"), Decimal("0"))

    def test_zero_cost_gain_percent_is_zero(self):
        asset = make_asset("TW_STOCK", shares=10, cost_basis=0, current_price=100)

        gain, gain_percent = unrealized_gain(asset)

        assert gain == Decimal("1000")
        assert gain_percent == Decimal("0")

    def test_safe_percent_zero_denominator(self):
        assert safe_percent(Decimal("5"), Decimal("0")) == Decimal("0")


# =============================================================================
# 淨值摘要
# =============================================================================


class TestSummarize:

    def test_sample_portfolio(self):
        summary = summarize(sample_assets(), RATE)

        assert summary.tw_stocks == Decimal("1450000")
        assert summary.us_stocks == Decimal("371449")
        assert summary.cash == Decimal("597500")
        assert summary.total_assets == Decimal("2418949")
        assert summary.total_liabilities == Decimal("800000")
        assert summary.net_worth == Decimal("1618949")
        assert_decimal_equal(summary.debt_ratio, "33.07")
        assert_decimal_equal(summary.net_worth_usd, "49813.82")

    def test_net_worth_identity(self):
        summary = summarize(sample_assets(), Decimal("30.1"))

        assert summary.net_worth == summary.total_assets - summary.total_liabilities
        assert summary.total_assets == summary.tw_stocks + summary.us_stocks + summary.cash

    def test_empty_portfolio_is_all_zero(self):
        summary = summarize([], RATE)

        assert summary.total_assets == 0
        assert summary.total_liabilities == 0
        assert summary.net_worth == 0
        assert summary.debt_ratio == 0
        assert summary.asset_allocation == [EMPTY_ALLOCATION]

    def test_zero_rate_does_not_raise(self):
        summary = summarize(sample_assets(), Decimal("0"))

        assert summary.net_worth_usd == 0
        assert summary.us_stocks == 0

    def test_loans_only_debt_ratio_zero(self):
        summary = summarize([make_asset("LOAN_TWD", current_price=1000)], RATE)

        assert summary.net_worth == Decimal("-1000")
        assert summary.debt_ratio == 0

    def test_allocation_excludes_loans_and_sorted(self):
        summary = summarize(sample_assets(), RATE)

        names = [s.name for s in summary.asset_allocation]
        assert "信用貸款" not in names
        assert names[0] == "2330 台積電"
        values = [s.value for s in summary.asset_allocation]
        assert values == sorted(values, reverse=True)
        assert [s.name for s in summary.category_allocation] == ["台股", "美股", "現金"]

    def test_filter_visible_hides_markets(self):
        visible = filter_visible(sample_assets(), show_tw_stocks=False, show_us_stocks=True)

        assert all(a.type is not AssetType.TW_STOCK for a in visible)
        assert summarize(visible, RATE).tw_stocks == 0
        assert len(filter_visible(sample_assets(), False, False)) == 3


# =============================================================================
# 分類明細
# =============================================================================


class TestCategoryView:

    def test_bucket_percentages_sum_to_100(self):
        view = category_view(sample_assets(), RATE, "STOCKS")

        total = sum(row.percent_of_category for row in view.rows)
        assert_decimal_equal(total, "100")
        assert view.total_value_twd == Decimal("1821449")

    def test_market_tab_keeps_bucket_denominator(self):
        everything = category_view(sample_assets(), RATE, "STOCKS")
        us_only = category_view(sample_assets(), RATE, "STOCKS", market="US")

        assert [r.asset.id for r in us_only.rows] == ["nvda", "voo"]
        assert us_only.total_value_twd == everything.total_value_twd
        by_id = {r.asset.id: r.percent_of_category for r in everything.rows}
        for row in us_only.rows:
            assert row.percent_of_category == by_id[row.asset.id]

    def test_cash_bucket_ignores_market(self):
        view = category_view(sample_assets(), RATE, "CASH", market="TW")

        assert view.market == "ALL"
        assert {r.asset.id for r in view.rows} == {"twd", "usd"}
        assert {r.currency for r in view.rows} == {"TWD", "USD"}

    def test_empty_bucket(self):
        view = category_view([], RATE, "LIABILITIES")

        assert view.rows == []
        assert view.total_value_twd == 0


# =============================================================================
# 產業分布
# =============================================================================


class TestSectorAllocation:

    def test_untagged_stocks_are_other(self):
        assets = [
            make_asset("TW_STOCK", name="2330", shares=1, current_price=300, sector=Sector.SEMICONDUCTOR),
            make_asset("TW_STOCK", name="9999", shares=1, current_price=100),
            make_asset("CASH_TWD", current_price=1000000),
        ]

        slices = sector_allocation(assets, RATE)

        assert [s.sector for s in slices] == [Sector.SEMICONDUCTOR, Sector.OTHER]
        assert slices[0].percentage == Decimal("75")
        assert slices[1].percentage == Decimal("25")

    def test_no_stocks(self):
        assert sector_allocation([make_asset("CASH_TWD", current_price=10)], RATE) == []
