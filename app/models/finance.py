# app/models/finance.py
from pydantic import BaseModel, Field
from typing import List, Literal, Optional


class FinancialMetricsSnapshot(BaseModel):
    """Agrégats renvoyés par l'API de reporting, en lecture seule."""
    total_assets: float = 0
    total_liabilities: float = 0
    total_equity: float = 0
    total_revenue: float = 0
    total_expenses: float = 0
    current_assets: float = 0
    current_liabilities: float = 0
    inventory: float = 0
    cost_of_goods_sold: float = 0
    average_inventory: float = 0
    net_income: Optional[float] = None

    @property
    def resolved_net_income(self) -> float:
        if self.net_income is not None:
            return self.net_income
        return self.total_revenue - self.total_expenses

    @property
    def gross_profit(self) -> float:
        return self.total_revenue - self.cost_of_goods_sold


class FinancialRatios(BaseModel):
    current_ratio: float
    quick_ratio: float
    debt_to_equity: float
    debt_ratio: float
    equity_ratio: float
    gross_profit_margin: float
    net_profit_margin: float
    roa: float
    roe: float
    asset_turnover: float
    inventory_turnover: float


class Debt(BaseModel):
    id: str
    balance: float
    minimum_payment: float = 0
    interest_rate: float = 0


class DebtAllocation(BaseModel):
    debt_id: str
    payment: float
    remaining_balance: float


class LoanRequest(BaseModel):
    principal: float
    rate: float
    term: float
    payments_per_year: int = 12
    payments_made: int = 0


class DepreciationRequest(BaseModel):
    method: Literal["straight_line", "declining_balance", "units_of_production", "sum_of_years_digits"]
    cost: float
    salvage_value: float = 0
    useful_life: float = 0
    rate: float = 2
    total_units: float = 0
    units_this_period: float = 0
    year: int = 1


class CashFlowRequest(BaseModel):
    cash_flows: List[float] = Field(min_length=1)
    discount_rate: float = 10
    initial_investment: float = 0


class DebtAllocationRequest(BaseModel):
    debts: List[Debt]
    total_payment: float
    strategy: Literal["snowball", "avalanche"] = "snowball"


class CurrencyFormatRequest(BaseModel):
    amount: float
    currency: Optional[str] = None
    locale: Optional[str] = None
