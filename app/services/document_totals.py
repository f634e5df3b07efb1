# app/services/document_totals.py
from datetime import date
from decimal import Decimal
from typing import List, Optional
import logging

from app.models.invoice import Document, DocumentTotals, DocumentType, LineItem
from app.models.validation import ValidationResult
from app.services.line_calculator import line_components, round_money
from app.services import validation

logger = logging.getLogger(__name__)

NUMBER_CHECKS = {
    DocumentType.INVOICE: (validation.is_valid_invoice_number, "INV-AAAA-NNNNNN"),
    DocumentType.BILL: (validation.is_valid_bill_number, "BILL-AAAA-NNNNNN"),
}


def compute_document_totals(lines: List[LineItem]) -> DocumentTotals:
    """
    Somme chaque composante non arrondie sur toutes les lignes, puis arrondit
    une seule fois. Même règle pour les factures clients et fournisseurs.
    """
    if lines is None:
        raise TypeError("compute_document_totals attend une liste de lignes, pas None")

    subtotal = Decimal("0")
    discount = Decimal("0")
    tax = Decimal("0")
    for line in lines:
        raw = line_components(line.quantity, line.unit_price, line.tax_rate, line.discount_rate)
        subtotal += raw.subtotal
        discount += raw.discount
        tax += raw.tax

    return DocumentTotals(
        subtotal=round_money(subtotal),
        tax_amount=round_money(tax),
        discount_amount=round_money(discount),
        total=round_money(subtotal + tax - discount),
    )


def recompute(document: Document) -> Document:
    """Retourne une copie du document avec les totaux de lignes et d'en-tête recalculés."""
    lines = [
        line.model_copy(update={
            "total": round_money(
                line_components(line.quantity, line.unit_price, line.tax_rate, line.discount_rate).total
            )
        })
        for line in document.lines
    ]
    totals = compute_document_totals(lines)
    return document.model_copy(update={"lines": lines, **totals.model_dump()})


def _parse_date(value: Optional[str]) -> Optional[date]:
    try:
        return date.fromisoformat(value)
    except (TypeError, ValueError):
        return None


def validate_document(document: Document) -> ValidationResult:
    """Contrôle avant soumission : erreurs bloquantes et avertissements."""
    errors = []
    warnings = []

    if not document.number.strip():
        errors.append("Le numéro du document est obligatoire")
    else:
        check, pattern = NUMBER_CHECKS[document.document_type]
        if not check(document.number):
            errors.append(f"Numéro {document.number} invalide : format attendu {pattern}")

    if not document.counterparty_id:
        if document.document_type == DocumentType.BILL:
            errors.append("Le fournisseur est obligatoire")
        else:
            errors.append("Le client est obligatoire")

    issue_date = _parse_date(document.date)
    if not document.date:
        errors.append("La date est obligatoire")
    elif issue_date is None:
        errors.append(f"Date invalide : {document.date}")

    if not document.due_date:
        warnings.append("Date d'échéance manquante")
    else:
        due = _parse_date(document.due_date)
        if due is None:
            errors.append(f"Date d'échéance invalide : {document.due_date}")
        elif issue_date is not None and due < issue_date:
            errors.append("La date d'échéance ne peut pas précéder la date du document")

    if not document.terms:
        warnings.append("Conditions de paiement manquantes")

    if not document.lines:
        errors.append("Le document doit contenir au moins une ligne")

    for index, line in enumerate(document.lines, start=1):
        if not line.description.strip():
            errors.append(f"Ligne {index} : description obligatoire")
        if line.quantity <= 0:
            errors.append(f"Ligne {index} : quantité invalide, doit être > 0")
        if line.unit_price < 0:
            errors.append(f"Ligne {index} : prix unitaire négatif")
        if not validation.is_valid_percentage(line.tax_rate):
            warnings.append(f"Ligne {index} : taux de taxe inhabituel ({line.tax_rate}%)")
        if not validation.is_valid_percentage(line.discount_rate):
            warnings.append(f"Ligne {index} : taux de remise hors 0-100 ({line.discount_rate}%)")

    if errors:
        logger.info("Document refusé", extra={"extra": {
            "number": document.number,
            "errors": len(errors),
        }})
    return ValidationResult.from_lists(errors, warnings)
