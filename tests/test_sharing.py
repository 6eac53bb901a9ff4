"""
Tests for the trip sharing calculator and trip financial checks.
"""
import pytest
import sys
from pathlib import Path

sys.path.insert(0, str(Path(__file__).parent.parent))

from junket_os.metrics.sharing import (
    AgentShare,
    calculate_trip_sharing,
    customer_net_position,
    validate_trip_financials,
)


class TestCalculateTripSharing:
    """House cascade and agent/company split."""

    def test_house_cascade(self):
        # Customer loses 10,000, commission 1,000, expenses 500
        result = calculate_trip_sharing(-10000, 500, 1000)

        assert result.house_gross_win == 10000
        assert result.house_net_win == 9000
        assert result.net_result == 8500

    def test_company_keeps_everything_without_agents(self):
        result = calculate_trip_sharing(-10000, 500, 1000)

        assert result.company_share_percentage == 100
        assert result.company_share == 8500
        assert result.total_agent_share == 0
        assert result.agent_breakdown == []

    def test_agent_split(self):
        result = calculate_trip_sharing(
            -10000, 500, 1000,
            agents=[
                {"agent_id": "A", "agent_name": "Alpha", "share_percentage": 30},
                {"agentId": "B", "sharePercentage": "20"},
            ],
        )

        assert result.agent_share_percentage == 50
        assert result.company_share_percentage == 50
        assert result.total_agent_share == pytest.approx(4250)
        assert result.company_share == pytest.approx(4250)
        assert [a.calculated_share for a in result.agent_breakdown] == pytest.approx([2550, 1700])
        assert result.agent_breakdown[1].agent_id == "B"

    def test_customer_win_gives_negative_profit(self):
        result = calculate_trip_sharing(2000, 100, 300, agents=[AgentShare("A", share_percentage=10)])

        assert result.net_result == -2400
        assert result.agent_breakdown[0].calculated_share == pytest.approx(-240)

    def test_cash_flow(self):
        result = calculate_trip_sharing(0, 0, 0, total_buy_in=5000, total_buy_out=3500)

        assert result.net_cash_flow == -1500

    def test_malformed_inputs(self):
        result = calculate_trip_sharing(None, "abc", float("nan"))

        assert result.net_result == 0
        assert result.company_share == 0

    def test_rejects_unknown_agent_entries(self):
        with pytest.raises(TypeError):
            calculate_trip_sharing(0, 0, 0, agents=["A"])

    def test_to_dict(self):
        data = calculate_trip_sharing(-100, 0, 0, agents=[{"agent_id": "A", "share_percentage": 10}]).to_dict()

        assert data["company_share"] == pytest.approx(90)
        assert data["agent_breakdown"][0]["agent_id"] == "A"


class TestCustomerNetPosition:

    def test_position(self):
        result = customer_net_position(win_loss=-1000, buy_in=5000, buy_out=3800, rolling_commission=140)

        assert result["net_cash_flow"] == -1200
        assert result["net_gaming_result"] == -1140
        assert result["total_net_position"] == -2340


class TestValidateTripFinancials:

    def test_clean_trip(self):
        result = validate_trip_financials(5000, 4000, -1000, 20000)

        assert result == {"is_valid": True, "warnings": [], "errors": []}

    def test_negative_buy_in_is_error(self):
        result = validate_trip_financials(-1, 0, 0, 0)

        assert result["is_valid"] is False
        assert "Total buy-in cannot be negative" in result["errors"]

    def test_warnings(self):
        no_rolling = validate_trip_financials(5000, 0, 0, 0)
        no_buy_in = validate_trip_financials(0, 0, 0, 1000)

        assert "Customers bought in but no rolling activity recorded" in no_rolling["warnings"]
        assert "Rolling activity recorded but no buy-in amounts" in no_buy_in["warnings"]
        assert no_rolling["is_valid"] is True

    def test_disproportionate_cash_flow(self):
        result = validate_trip_financials(10000, 0, -100, 5000)

        assert "Net cash flow seems disproportionate to win/loss amounts" in result["warnings"]
