"""
Trip sharing: splitting house final profit between trip agents and the company.

House perspective:
1. House Gross Win = -total_win_loss (customer loss is house win)
2. House Net Win = House Gross Win - rolling commission
3. House Final Profit = House Net Win - expenses

Example: customer loses 10,000, commission 1,000, expenses 500
    gross 10,000 -> net 9,000 -> final 8,500
"""
from dataclasses import dataclass, field
from typing import Any, Dict, List, Mapping, Optional, Sequence

from junket_os.data.normalize import safe_number


@dataclass
class AgentShare:
    """One agent's cut of a trip."""
    agent_id: str
    agent_name: str = ""
    share_percentage: float = 0.0
    calculated_share: float = 0.0


@dataclass
class TripSharing:
    """Full profit split for one trip."""
    total_win_loss: float
    total_expenses: float
    total_rolling_commission: float
    total_buy_in: float
    total_buy_out: float
    net_cash_flow: float
    house_gross_win: float
    house_net_win: float
    net_result: float
    total_agent_share: float
    company_share: float
    agent_share_percentage: float
    company_share_percentage: float
    agent_breakdown: List[AgentShare] = field(default_factory=list)

    def to_dict(self) -> Dict[str, Any]:
        data = dict(self.__dict__)
        data["agent_breakdown"] = [dict(a.__dict__) for a in self.agent_breakdown]
        return data


def _as_agent_share(agent: Any) -> AgentShare:
    if isinstance(agent, AgentShare):
        return agent
    if isinstance(agent, Mapping):
        return AgentShare(
            agent_id=str(agent.get("agent_id") or agent.get("agentId") or ""),
            agent_name=agent.get("agent_name") or agent.get("agentName") or "",
            share_percentage=safe_number(
                agent.get("share_percentage", agent.get("sharePercentage"))
            ),
        )
    raise TypeError(f"Unsupported agent share entry: {agent!r}")


def calculate_trip_sharing(total_win_loss: float,
                           total_expenses: float,
                           total_rolling_commission: float,
                           agents: Optional[Sequence[Any]] = None,
                           total_buy_in: float = 0.0,
                           total_buy_out: float = 0.0) -> TripSharing:
    """
    Compute the agent/company split of house final profit.

    Each agent's share_percentage is a percentage of house final profit;
    the company keeps 100 minus the sum of agent percentages.
    """
    shares = [_as_agent_share(a) for a in (agents or [])]

    total_win_loss = safe_number(total_win_loss)
    total_expenses = safe_number(total_expenses)
    total_rolling_commission = safe_number(total_rolling_commission)
    total_buy_in = safe_number(total_buy_in)
    total_buy_out = safe_number(total_buy_out)

    agent_pct = sum(a.share_percentage for a in shares)
    company_pct = 100 - agent_pct

    house_gross_win = -total_win_loss
    house_net_win = house_gross_win - total_rolling_commission
    house_final_profit = house_net_win - total_expenses

    breakdown = [
        AgentShare(
            agent_id=a.agent_id,
            agent_name=a.agent_name,
            share_percentage=a.share_percentage,
            calculated_share=house_final_profit * a.share_percentage / 100,
        )
        for a in shares
    ]

    return TripSharing(
        total_win_loss=total_win_loss,
        total_expenses=total_expenses,
        total_rolling_commission=total_rolling_commission,
        total_buy_in=total_buy_in,
        total_buy_out=total_buy_out,
        net_cash_flow=total_buy_out - total_buy_in,
        house_gross_win=house_gross_win,
        house_net_win=house_net_win,
        net_result=house_final_profit,
        total_agent_share=house_final_profit * agent_pct / 100,
        company_share=house_final_profit * company_pct / 100,
        agent_share_percentage=agent_pct,
        company_share_percentage=company_pct,
        agent_breakdown=breakdown,
    )


def customer_net_position(win_loss: float, buy_in: float, buy_out: float,
                          rolling_commission: float) -> Dict[str, float]:
    """Customer's cash flow, gaming result after commission, and total position."""
    net_cash_flow = safe_number(buy_out) - safe_number(buy_in)
    net_gaming_result = safe_number(win_loss) - safe_number(rolling_commission)
    return {
        "net_cash_flow": net_cash_flow,
        "net_gaming_result": net_gaming_result,
        "total_net_position": net_cash_flow + net_gaming_result,
    }


def validate_trip_financials(total_buy_in: float, total_buy_out: float,
                             total_win_loss: float, total_rolling: float) -> Dict[str, Any]:
    """
    Sanity checks on a trip's totals.

    Returns dict with is_valid, warnings, errors.
    """
    total_buy_in = safe_number(total_buy_in)
    total_buy_out = safe_number(total_buy_out)
    total_win_loss = safe_number(total_win_loss)
    total_rolling = safe_number(total_rolling)

    errors = []
    warnings = []

    if total_buy_in < 0:
        errors.append("Total buy-in cannot be negative")
    if total_buy_out < 0:
        errors.append("Total buy-out cannot be negative")
    if total_rolling < 0:
        warnings.append("Total rolling amount is negative - this is unusual")

    net_cash_flow = total_buy_out - total_buy_in
    if abs(net_cash_flow) > abs(total_win_loss) * 2:
        warnings.append("Net cash flow seems disproportionate to win/loss amounts")

    if total_buy_in > 0 and total_rolling == 0:
        warnings.append("Customers bought in but no rolling activity recorded")
    if total_rolling > 0 and total_buy_in == 0:
        warnings.append("Rolling activity recorded but no buy-in amounts")

    return {
        "is_valid": len(errors) == 0,
        "warnings": warnings,
        "errors": errors,
    }
