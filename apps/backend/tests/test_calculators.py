"""
產業判斷、複利試算與再平衡試算測試
"""

from decimal import Decimal

import pytest

from conftest import RATE, assert_decimal_equal, sample_assets
from wealthfolio.engine.compound import project_growth
from wealthfolio.engine.rebalance import plan_rebalance
from wealthfolio.engine.sector import detect_sector
from wealthfolio.schemas.wealth import Sector


class TestDetectSector:

    @pytest.mark.parametrize("name, expected", [
        ("2330 台積電", Sector.SEMICONDUCTOR),
        ("NVDA", Sector.SEMICONDUCTOR),
        ("0050 元大台灣50", Sector.ETF),
        ("00878 國泰永續高股息", Sector.ETF),
        ("VOO", Sector.ETF),
        ("2882 國泰金", Sector.FINANCE),
        ("2885 元大金", Sector.FINANCE),
        ("AAPL", Sector.TECH),
        ("2317 鴻海", Sector.TECH),
        ("2603 長榮", Sector.TRADITIONAL),
        ("COIN", Sector.CRYPTO),
        ("", Sector.OTHER),
        ("XYZW", Sector.OTHER),
    ])
    def test_known_names(self, name, expected):
        assert detect_sector(name) == expected

    def test_short_ascii_keyword_needs_whole_word(self):
        # "MA" 不應命中 "AMAZING"
        assert detect_sector("AMAZING") == Sector.OTHER
        assert detect_sector("ma") == Sector.FINANCE


class TestCompound:

    def test_yearly_points_rounded(self):
        projection = project_growth(Decimal("1000000"), Decimal("7"), 10)

        assert len(projection.points) == 11
        assert projection.points[0].amount == Decimal("1000000")
        assert projection.points[1].amount == Decimal("1070000")
        assert projection.points[2].amount == Decimal("1144900")
        assert projection.final_value == Decimal("1967151")
        assert projection.total_growth == Decimal("967151")

    def test_negative_principal_clamped(self):
        projection = project_growth(Decimal("-5000"), Decimal("7"), 3)

        assert projection.principal == 0
        assert all(p.amount == 0 for p in projection.points)

    def test_rate_and_years_clamped(self):
        projection = project_growth(Decimal("1000000"), Decimal("1000"), 100)

        assert projection.annual_rate == Decimal("100")
        assert projection.years == 50
        assert len(projection.points) == 51
        assert projection.points[30].amount == Decimal("1073741824000000")

    def test_large_principal_keeps_full_precision(self):
        projection = project_growth(Decimal("1e20"), Decimal("100"), 50)

        assert projection.final_value == Decimal("1125899906842624") * Decimal("1e20")
        assert projection.total_growth == projection.final_value - Decimal("1e20")


class TestRebalance:

    def test_buy_plan_for_us_stock(self):
        plan = plan_rebalance(sample_assets(), RATE, "nvda", Decimal("10"))

        assert plan is not None
        assert plan.is_buy
        assert plan.currency_symbol == "US$"
        assert plan.total_assets_twd == Decimal("2418949")
        assert_decimal_equal(plan.target_value_twd, "241894.90")
        assert_decimal_equal(plan.gap_twd, "123945.90")
        assert_decimal_equal(plan.gap_in_currency, "3813.72")
        assert_decimal_equal(plan.required_shares, "21.02")

    def test_sell_plan_for_tw_stock(self):
        plan = plan_rebalance(sample_assets(), RATE, "tw", Decimal("50"))

        assert not plan.is_buy
        assert plan.currency_symbol == "NT$"
        assert plan.gap_twd == plan.gap_in_currency
        assert_decimal_equal(plan.current_percent, "59.94")

    def test_unknown_or_non_stock(self):
        assert plan_rebalance(sample_assets(), RATE, "missing", Decimal("10")) is None
        assert plan_rebalance(sample_assets(), RATE, "twd", Decimal("10")) is None
        assert plan_rebalance([], RATE, "nvda", Decimal("10")) is None
