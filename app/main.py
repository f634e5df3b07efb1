from fastapi import FastAPI, HTTPException, APIRouter
from fastapi.exceptions import RequestValidationError
from fastapi.responses import JSONResponse
import logging
import os

from app.models.invoice import Document, LineItem, LineAmounts
from app.models.journal import JournalAction, JournalEntryDraft
from app.models.finance import (
    CashFlowRequest,
    CurrencyFormatRequest,
    DebtAllocationRequest,
    DepreciationRequest,
    FinancialMetricsSnapshot,
    FinancialRatios,
    LoanRequest,
)
from app.services.line_calculator import compute_line
from app.services.document_totals import recompute, validate_document
from app.services import financial, formatting
from app.services.journal_validator import (
    InvalidTransitionError,
    JournalValidationError,
    journal_totals,
    next_journal_status,
    post_journal_entry,
    validate_journal_draft,
    void_journal_entry,
)

import json
import time

VERSION = "1.0.0"

LOG_LEVEL = os.getenv("LOG_LEVEL", "INFO").upper()
DEFAULT_CURRENCY = os.getenv("DEFAULT_CURRENCY", formatting.DEFAULT_CURRENCY)
DEFAULT_LOCALE = os.getenv("DEFAULT_LOCALE", formatting.DEFAULT_LOCALE)


class JSONFormatter(logging.Formatter):
    def format(self, record):
        log_data = {
            "timestamp": self.formatTime(record),
            "level": record.levelname,
            "logger": record.name,
            "message": record.getMessage(),
        }
        if hasattr(record, "extra") and isinstance(record.extra, dict):
            log_data.update(record.extra)
        return json.dumps(log_data, ensure_ascii=False, default=str)

# Supprime les handlers existants et applique le notre
root_logger = logging.getLogger()
root_logger.setLevel(LOG_LEVEL)
for h in root_logger.handlers[:]:
    root_logger.removeHandler(h)
handler = logging.StreamHandler()
handler.setFormatter(JSONFormatter())
root_logger.addHandler(handler)
logger = logging.getLogger(__name__)

app = FastAPI(
    title="Ledger Core",
    description="Calculs comptables : lignes, totaux de documents, écritures en partie double, ratios financiers",
    version=VERSION
)


# Gestionnaire erreurs de validation JSON (422)
@app.exception_handler(RequestValidationError)
async def validation_exception_handler(request, exc):
    return JSONResponse(
        status_code=422,
        content={
            "error": "Données invalides",
            "detail": str(exc.errors())
        }
    )


v1 = APIRouter(prefix="/v1")


@app.get("/health")
def health_check():
    return {"status": "ok", "version": VERSION}


@v1.post("/lines/compute", response_model=LineAmounts)
def compute_line_amounts(line: LineItem):
    return compute_line(line.quantity, line.unit_price, line.tax_rate, line.discount_rate)


@v1.post("/documents/recompute", response_model=Document)
def recompute_document(document: Document):
    return recompute(document)


@v1.post("/documents/dry-run")
def dry_run_document(document: Document):
    """Recalcule et contrôle un document sans rien enregistrer."""
    try:
        start = time.time()
        document = recompute(document)
        result = validate_document(document)

        duration = round((time.time() - start) * 1000)
        logger.info("Dry run effectué", extra={"extra": {
            "document_type": document.document_type.value,
            "number": document.number,
            "errors": len(result.violations),
            "warnings": len(result.warnings),
            "duration_ms": duration
        }})

        return {
            "valid": result.is_valid,
            "number": document.number,
            "subtotal": str(document.subtotal),
            "tax_amount": str(document.tax_amount),
            "discount_amount": str(document.discount_amount),
            "total": str(document.total),
            "total_formatted": formatting.format_currency(document.total, document.currency, DEFAULT_LOCALE),
            "errors": result.violations,
            "warnings": result.warnings,
            "duration_ms": duration
        }
    except Exception as e:
        logger.error(f"Erreur dry run : {e}")
        raise HTTPException(status_code=500, detail={"error": "Erreur dry run", "message": str(e)})


@v1.post("/journal-entries/validate")
def validate_journal_entry(draft: JournalEntryDraft):
    result = validate_journal_draft(draft)
    totals = journal_totals(draft)
    return {
        "is_valid": result.is_valid,
        "violations": result.violations,
        "total_debit": str(totals.total_debit),
        "total_credit": str(totals.total_credit),
        "difference": str(totals.difference),
    }


@v1.post("/journal-entries/{action}", response_model=JournalEntryDraft)
def transition_journal_entry(action: JournalAction, draft: JournalEntryDraft):
    try:
        if action == JournalAction.POST:
            entry = post_journal_entry(draft)
        elif action == JournalAction.VOID:
            entry = void_journal_entry(draft)
        else:
            next_journal_status(draft.status, action)
            logger.info("Écriture supprimée", extra={"extra": {"reference": draft.reference}})
            return JSONResponse(status_code=200, content={"deleted": True, "reference": draft.reference})
        logger.info("Écriture mise à jour", extra={"extra": {"reference": draft.reference, "status": entry.status.value}})
        return entry
    except InvalidTransitionError as e:
        raise HTTPException(status_code=409, detail={"error": str(e)})
    except JournalValidationError as e:
        raise HTTPException(status_code=400, detail={"error": "Écriture invalide", "violations": e.violations})


@v1.post("/reports/ratios", response_model=FinancialRatios)
def financial_ratios(snapshot: FinancialMetricsSnapshot):
    try:
        return financial.compute_ratios(snapshot)
    except Exception as e:
        logger.error(f"Erreur ratios : {e}")
        raise HTTPException(status_code=500, detail={"error": "Erreur interne", "message": str(e)})


@v1.post("/finance/loan")
def loan_schedule(request: LoanRequest):
    try:
        return {
            "payment": financial.calculate_loan_payment(
                request.principal, request.rate, request.term, request.payments_per_year),
            "balance": financial.calculate_loan_balance(
                request.principal, request.rate, request.term, request.payments_made, request.payments_per_year),
        }
    except ZeroDivisionError:
        raise HTTPException(status_code=400, detail={"error": "La durée et la périodicité doivent être > 0"})
    except Exception as e:
        logger.error(f"Erreur emprunt : {e}")
        raise HTTPException(status_code=500, detail={"error": "Erreur interne", "message": str(e)})


@v1.post("/finance/depreciation")
def depreciation(request: DepreciationRequest):
    try:
        if request.method == "straight_line":
            amount = financial.calculate_straight_line_depreciation(
                request.cost, request.salvage_value, request.useful_life)
        elif request.method == "declining_balance":
            amount = financial.calculate_declining_balance_depreciation(
                request.cost, request.salvage_value, request.useful_life, request.rate)
        elif request.method == "units_of_production":
            amount = financial.calculate_units_of_production_depreciation(
                request.cost, request.salvage_value, request.total_units, request.units_this_period)
        else:
            amount = financial.calculate_sum_of_years_digits_depreciation(
                request.cost, request.salvage_value, int(request.useful_life), request.year)
        return {"method": request.method, "amount": amount}
    except ZeroDivisionError:
        raise HTTPException(status_code=400, detail={"error": "Durée de vie ou nombre d'unités nul"})
    except Exception as e:
        logger.error(f"Erreur amortissement : {e}")
        raise HTTPException(status_code=500, detail={"error": "Erreur interne", "message": str(e)})


@v1.post("/finance/cash-flows")
def cash_flows(request: CashFlowRequest):
    try:
        return {
            "npv": financial.calculate_npv(request.cash_flows, request.discount_rate, request.initial_investment),
            "irr": financial.calculate_irr(request.cash_flows),
        }
    except Exception as e:
        logger.error(f"Erreur flux de trésorerie : {e}")
        raise HTTPException(status_code=500, detail={"error": "Erreur interne", "message": str(e)})


@v1.post("/finance/debt-allocation")
def debt_allocation(request: DebtAllocationRequest):
    try:
        if request.strategy == "avalanche":
            allocations = financial.calculate_avalanche_payment_allocation(request.debts, request.total_payment)
        else:
            allocations = financial.calculate_snowball_payment_allocation(request.debts, request.total_payment)
        return {"strategy": request.strategy, "allocations": [a.model_dump() for a in allocations]}
    except Exception as e:
        logger.error(f"Erreur répartition des dettes : {e}")
        raise HTTPException(status_code=500, detail={"error": "Erreur interne", "message": str(e)})


@v1.post("/format/currency")
def format_amount(request: CurrencyFormatRequest):
    try:
        currency = request.currency or DEFAULT_CURRENCY
        return {
            "currency": currency.upper(),
            "supported": formatting.is_supported_currency(currency),
            "formatted": formatting.format_currency(request.amount, currency, request.locale or DEFAULT_LOCALE),
        }
    except Exception as e:
        logger.error(f"Erreur formatage : {e}")
        raise HTTPException(status_code=500, detail={"error": "Erreur interne", "message": str(e)})


# Enregistrement du router v1
app.include_router(v1)
