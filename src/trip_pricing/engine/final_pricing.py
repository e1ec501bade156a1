"""
Final client pricing - layers operator margins on top of the catalog total.

Each adjustment compounds on the subtotal before it:
    base -> + contingency % -> + local agent commission % -> + profit %
"""
from dataclasses import dataclass
from typing import Optional

from ..config.settings import Settings, get_settings
from .models import PricingResult


@dataclass(frozen=True)
class FinalPricingInput:
    base_total: float
    travelers: int
    contingency_pct: float = 0.0
    agent_commission_pct: float = 0.0
    profit_pct: float = 0.0


@dataclass(frozen=True)
class FinalPricingResult:
    base_total: float
    contingency_amount: float
    subtotal_after_contingency: float
    agent_commission_amount: float
    subtotal_after_agent: float
    profit_amount: float
    final_total: float
    final_per_person: float

    def to_dict(self) -> dict:
        return {
            "baseTotal": self.base_total,
            "contingencyAmount": self.contingency_amount,
            "subtotalAfterContingency": self.subtotal_after_contingency,
            "agentCommissionAmount": self.agent_commission_amount,
            "subtotalAfterAgent": self.subtotal_after_agent,
            "profitAmount": self.profit_amount,
            "finalTotal": self.final_total,
            "finalPerPerson": self.final_per_person,
        }


def calculate_final_pricing(data: FinalPricingInput) -> FinalPricingResult:
    contingency = data.base_total * data.contingency_pct / 100
    after_contingency = data.base_total + contingency

    commission = after_contingency * data.agent_commission_pct / 100
    after_agent = after_contingency + commission

    profit = after_agent * data.profit_pct / 100
    final_total = after_agent + profit

    return FinalPricingResult(
        base_total=data.base_total,
        contingency_amount=contingency,
        subtotal_after_contingency=after_contingency,
        agent_commission_amount=commission,
        subtotal_after_agent=after_agent,
        profit_amount=profit,
        final_total=final_total,
        final_per_person=final_total / data.travelers if data.travelers > 0 else 0.0,
    )


def final_pricing_for(result: PricingResult, settings: Optional[Settings] = None) -> FinalPricingResult:
    """Apply the configured margins to a pricing result's grand total."""
    settings = settings or get_settings()
    return calculate_final_pricing(FinalPricingInput(
        base_total=result.grand_total,
        travelers=result.travelers,
        contingency_pct=settings.contingency_pct,
        agent_commission_pct=settings.agent_commission_pct,
        profit_pct=settings.profit_pct,
    ))
