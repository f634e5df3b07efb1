# app/services/financial.py
from decimal import Decimal, ROUND_HALF_UP
from typing import Iterable, List, Sequence
import logging
import math

from app.models.finance import Debt, DebtAllocation, FinancialMetricsSnapshot, FinancialRatios

logger = logging.getLogger(__name__)

IRR_INITIAL_GUESS = 0.1
IRR_MAX_ITERATIONS = 100
IRR_TOLERANCE = 0.0001
# Bornes du taux pendant Newton-Raphson : -99 % / 1000 %
IRR_MIN_GUESS = -0.99
IRR_MAX_GUESS = 10.0


def round_to_decimals(value: float, decimals: int = 2) -> float:
    """Arrondi commercial (demi supérieur) à `decimals` décimales."""
    if not math.isfinite(value):
        return 0.0
    q = Decimal(1).scaleb(-decimals)
    return float(Decimal(repr(float(value))).quantize(q, rounding=ROUND_HALF_UP))


def _safe_ratio(numerator: float, denominator: float, scale: float = 1) -> float:
    if denominator == 0:
        return 0
    return round_to_decimals(numerator / denominator * scale, 2)


# --- Intérêts et emprunts ---

def calculate_simple_interest(principal: float, rate: float, time: float) -> float:
    return round_to_decimals(principal * rate * time / 100)


def _growth(rate: float, time: float, compounding_frequency: int) -> float:
    return (1 + rate / 100 / compounding_frequency) ** (compounding_frequency * time)


def calculate_compound_interest(principal: float, rate: float, time: float, compounding_frequency: int = 1) -> float:
    if compounding_frequency == 0:
        return 0
    return round_to_decimals(principal * _growth(rate, time, compounding_frequency) - principal)


def calculate_future_value(principal: float, rate: float, time: float, compounding_frequency: int = 1) -> float:
    if compounding_frequency == 0:
        return 0
    return round_to_decimals(principal * _growth(rate, time, compounding_frequency))


def calculate_present_value(future_value: float, rate: float, time: float, compounding_frequency: int = 1) -> float:
    if compounding_frequency == 0:
        return 0
    growth = _growth(rate, time, compounding_frequency)
    if growth == 0:
        return 0
    return round_to_decimals(future_value / growth)


def _raw_payment(principal: float, rate_per_period: float, total_payments: float) -> float:
    factor = (1 + rate_per_period) ** total_payments
    return principal * rate_per_period * factor / (factor - 1)


def calculate_loan_payment(principal: float, rate: float, term: float, payments_per_year: int = 12) -> float:
    """Mensualité constante (PMT). Taux nul : remboursement linéaire."""
    rate_per_period = rate / 100 / payments_per_year
    total_payments = term * payments_per_year
    if rate_per_period == 0:
        return round_to_decimals(principal / total_payments)
    return round_to_decimals(_raw_payment(principal, rate_per_period, total_payments))


def calculate_loan_balance(
    principal: float,
    rate: float,
    term: float,
    payments_made: int,
    payments_per_year: int = 12,
) -> float:
    """Capital restant dû après `payments_made` échéances, jamais négatif."""
    rate_per_period = rate / 100 / payments_per_year
    total_payments = term * payments_per_year

    if rate_per_period == 0:
        payment = principal / total_payments
        return round_to_decimals(principal - payment * payments_made)

    payment = _raw_payment(principal, rate_per_period, total_payments)
    growth = (1 + rate_per_period) ** payments_made
    balance = principal * growth - payment * ((growth - 1) / rate_per_period)
    return round_to_decimals(max(0.0, balance))


# --- Amortissements ---

def calculate_straight_line_depreciation(cost: float, salvage_value: float, useful_life: float) -> float:
    return round_to_decimals((cost - salvage_value) / useful_life)


def calculate_declining_balance_depreciation(
    cost: float,
    salvage_value: float,
    useful_life: float,
    rate: float = 2,
) -> float:
    # Dégressif : rate=2 pour le double dégressif. La valeur résiduelle n'intervient pas.
    return round_to_decimals(cost * (rate / useful_life) / 100)


def calculate_units_of_production_depreciation(
    cost: float,
    salvage_value: float,
    total_units: float,
    units_this_period: float,
) -> float:
    per_unit = (cost - salvage_value) / total_units
    return round_to_decimals(per_unit * units_this_period)


def calculate_sum_of_years_digits_depreciation(
    cost: float,
    salvage_value: float,
    useful_life: int,
    year: int,
) -> float:
    sum_of_years = useful_life * (useful_life + 1) / 2
    remaining_life = useful_life - year + 1
    return round_to_decimals((cost - salvage_value) * remaining_life / sum_of_years)


# --- Ratios financiers (0 si dénominateur nul) ---

def calculate_current_ratio(current_assets: float, current_liabilities: float) -> float:
    return _safe_ratio(current_assets, current_liabilities)


def calculate_quick_ratio(current_assets: float, inventory: float, current_liabilities: float) -> float:
    return _safe_ratio(current_assets - inventory, current_liabilities)


def calculate_debt_to_equity_ratio(total_liabilities: float, total_equity: float) -> float:
    return _safe_ratio(total_liabilities, total_equity)


def calculate_debt_ratio(total_liabilities: float, total_assets: float) -> float:
    return _safe_ratio(total_liabilities, total_assets)


def calculate_equity_ratio(total_equity: float, total_assets: float) -> float:
    return _safe_ratio(total_equity, total_assets)


def calculate_gross_profit_margin(gross_profit: float, revenue: float) -> float:
    return _safe_ratio(gross_profit, revenue, 100)


def calculate_net_profit_margin(net_income: float, revenue: float) -> float:
    return _safe_ratio(net_income, revenue, 100)


def calculate_roa(net_income: float, total_assets: float) -> float:
    return _safe_ratio(net_income, total_assets, 100)


def calculate_roe(net_income: float, total_equity: float) -> float:
    return _safe_ratio(net_income, total_equity, 100)


def calculate_asset_turnover(revenue: float, total_assets: float) -> float:
    return _safe_ratio(revenue, total_assets)


def calculate_inventory_turnover(cost_of_goods_sold: float, average_inventory: float) -> float:
    return _safe_ratio(cost_of_goods_sold, average_inventory)


def compute_ratios(snapshot: FinancialMetricsSnapshot) -> FinancialRatios:
    """Applique tous les ratios à un instantané de l'API de reporting."""
    net_income = snapshot.resolved_net_income
    return FinancialRatios(
        current_ratio=calculate_current_ratio(snapshot.current_assets, snapshot.current_liabilities),
        quick_ratio=calculate_quick_ratio(snapshot.current_assets, snapshot.inventory, snapshot.current_liabilities),
        debt_to_equity=calculate_debt_to_equity_ratio(snapshot.total_liabilities, snapshot.total_equity),
        debt_ratio=calculate_debt_ratio(snapshot.total_liabilities, snapshot.total_assets),
        equity_ratio=calculate_equity_ratio(snapshot.total_equity, snapshot.total_assets),
        gross_profit_margin=calculate_gross_profit_margin(snapshot.gross_profit, snapshot.total_revenue),
        net_profit_margin=calculate_net_profit_margin(net_income, snapshot.total_revenue),
        roa=calculate_roa(net_income, snapshot.total_assets),
        roe=calculate_roe(net_income, snapshot.total_equity),
        asset_turnover=calculate_asset_turnover(snapshot.total_revenue, snapshot.total_assets),
        inventory_turnover=calculate_inventory_turnover(snapshot.cost_of_goods_sold, snapshot.average_inventory),
    )


# --- Taxes ---

def calculate_tax_amount(taxable_amount: float, tax_rate: float) -> float:
    return round_to_decimals(taxable_amount * (tax_rate / 100))


def calculate_tax_inclusive_amount(tax_exclusive_amount: float, tax_rate: float) -> float:
    return round_to_decimals(tax_exclusive_amount * (1 + tax_rate / 100))


def calculate_tax_exclusive_amount(tax_inclusive_amount: float, tax_rate: float) -> float:
    divisor = 1 + tax_rate / 100
    if divisor == 0:
        return 0
    return round_to_decimals(tax_inclusive_amount / divisor)


def calculate_compound_tax(amount: float, tax_rates: Iterable[float]) -> float:
    """Taxes en cascade : chaque taux s'applique à la base augmentée des taxes précédentes."""
    total_tax = 0.0
    base = amount
    for rate in tax_rates:
        tax = calculate_tax_amount(base, rate)
        total_tax += tax
        base += tax
    return round_to_decimals(total_tax)


# --- Conversion de devises ---

def convert_currency(amount: float, from_currency: str, to_currency: str, exchange_rate: float) -> float:
    if from_currency == to_currency:
        return amount
    return round_to_decimals(amount * exchange_rate)


def calculate_exchange_rate(from_amount: float, to_amount: float, from_currency: str = None, to_currency: str = None) -> float:
    if from_amount == 0:
        return 0
    return round_to_decimals(to_amount / from_amount, 4)


# --- Valeur temps de l'argent ---

def _discount_factor(base: float, period: int) -> float:
    # base ** -period, 0 hors de la plage des flottants
    try:
        return base ** -period
    except (OverflowError, ZeroDivisionError):
        return 0.0


def _npv(cash_flows: Sequence[float], discount_rate: float, initial_investment: float = 0) -> float:
    base = 1 + discount_rate / 100
    npv = -initial_investment
    for period, cash_flow in enumerate(cash_flows, start=1):
        npv += cash_flow * _discount_factor(base, period)
    return npv


def _npv_derivative(cash_flows: Sequence[float], discount_rate: float) -> float:
    base = 1 + discount_rate / 100
    derivative = 0.0
    for period, cash_flow in enumerate(cash_flows, start=1):
        derivative -= period * cash_flow * _discount_factor(base, period + 1)
    return derivative


def calculate_npv(cash_flows: Sequence[float], discount_rate: float, initial_investment: float = 0) -> float:
    """VAN : flux actualisés à partir de la période 1, moins l'investissement initial."""
    return round_to_decimals(_npv(cash_flows, discount_rate, initial_investment))


def calculate_irr(
    cash_flows: Sequence[float],
    initial_guess: float = IRR_INITIAL_GUESS,
    max_iterations: int = IRR_MAX_ITERATIONS,
    tolerance: float = IRR_TOLERANCE,
) -> float:
    """
    TRI par Newton-Raphson sur la VAN. Retourne un pourcentage arrondi à 2 décimales.
    Le taux courant est borné entre -99 % et 1000 % à chaque itération.
    """
    guess = initial_guess
    for _ in range(max_iterations):
        npv = _npv(cash_flows, guess * 100)
        derivative = _npv_derivative(cash_flows, guess * 100)
        if abs(derivative) < tolerance:
            break
        step = npv / derivative
        if not math.isfinite(step):
            logger.warning("TRI : pas de Newton non fini", extra={"extra": {"guess": guess}})
            break
        new_guess = min(max(guess - step, IRR_MIN_GUESS), IRR_MAX_GUESS)
        if abs(new_guess - guess) < tolerance:
            guess = new_guess
            break
        guess = new_guess
    else:
        logger.warning("TRI non convergé", extra={"extra": {"iterations": max_iterations, "guess": guess}})
    return round_to_decimals(guess * 100, 2)


# --- Remboursement de dettes ---

def _allocate(ordered_debts: List[Debt], total_payment: float) -> List[DebtAllocation]:
    allocations = []
    remaining = total_payment
    for debt in ordered_debts:
        if remaining <= 0:
            break
        payment = min(remaining, debt.balance)
        allocations.append(DebtAllocation(
            debt_id=debt.id,
            payment=round_to_decimals(payment),
            remaining_balance=round_to_decimals(debt.balance - payment),
        ))
        remaining -= payment
    return allocations


def calculate_snowball_payment_allocation(debts: List[Debt], total_payment: float) -> List[DebtAllocation]:
    """Boule de neige : le plus petit solde d'abord."""
    return _allocate(sorted(debts, key=lambda d: d.balance), total_payment)


def calculate_avalanche_payment_allocation(debts: List[Debt], total_payment: float) -> List[DebtAllocation]:
    """Avalanche : le taux d'intérêt le plus élevé d'abord."""
    return _allocate(sorted(debts, key=lambda d: d.interest_rate, reverse=True), total_payment)
