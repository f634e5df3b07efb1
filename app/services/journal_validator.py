# app/services/journal_validator.py
from decimal import Decimal
from typing import List, Optional
import logging

from app.models.journal import (
    JournalAction,
    JournalEntryDraft,
    JournalEntryStatus,
    JournalTotals,
)
from app.models.validation import ValidationResult
from app.services.line_calculator import round_money
from app.services.validation import validate_balanced_entry

logger = logging.getLogger(__name__)

# (statut, action) -> statut suivant. None : écriture supprimée.
TRANSITIONS = {
    (JournalEntryStatus.DRAFT, JournalAction.POST): JournalEntryStatus.POSTED,
    (JournalEntryStatus.POSTED, JournalAction.VOID): JournalEntryStatus.VOIDED,
    (JournalEntryStatus.DRAFT, JournalAction.DELETE): None,
}


class InvalidTransitionError(ValueError):
    pass


class JournalValidationError(ValueError):
    def __init__(self, violations: List[str]):
        super().__init__("Écriture invalide : " + "; ".join(violations))
        self.violations = violations


def _require_draft(draft: JournalEntryDraft) -> None:
    if draft is None or draft.lines is None:
        raise TypeError("Une écriture avec une liste de lignes est requise")


def journal_totals(draft: JournalEntryDraft) -> JournalTotals:
    _require_draft(draft)
    total_debit = sum((line.debit for line in draft.lines), Decimal("0"))
    total_credit = sum((line.credit for line in draft.lines), Decimal("0"))
    return JournalTotals(
        total_debit=round_money(total_debit),
        total_credit=round_money(total_credit),
        difference=round_money(total_debit - total_credit),
    )


def validate_journal_draft(draft: JournalEntryDraft) -> ValidationResult:
    """
    Contrôle une écriture en partie double avant publication.
    Toutes les violations sont cumulées, dans l'ordre d'affichage du formulaire.
    Le brouillon n'est jamais modifié.
    """
    _require_draft(draft)
    violations = []

    if not draft.date:
        violations.append("La date est obligatoire")
    if not draft.reference:
        violations.append("La référence est obligatoire")
    if not draft.description:
        violations.append("La description est obligatoire")

    for index, line in enumerate(draft.lines, start=1):
        if not line.account_id.strip():
            violations.append(f"Compte obligatoire pour la ligne {index}")

    if not any(line.debit > 0 for line in draft.lines):
        violations.append("Au moins un montant au débit est requis")
    if not any(line.credit > 0 for line in draft.lines):
        violations.append("Au moins un montant au crédit est requis")

    total_debit = sum((line.debit for line in draft.lines), Decimal("0"))
    total_credit = sum((line.credit for line in draft.lines), Decimal("0"))
    if not validate_balanced_entry(total_debit, total_credit):
        violations.append("Le total des débits doit être égal au total des crédits")

    if violations:
        logger.debug("Écriture invalide", extra={"extra": {
            "reference": draft.reference,
            "violations": len(violations),
        }})
    return ValidationResult.from_lists(violations)


def check_postable_lines(draft: JournalEntryDraft) -> List[str]:
    """Règles strictes de publication : au moins deux lignes, un seul sens par ligne."""
    _require_draft(draft)
    problems = []
    if len(draft.lines) < 2:
        problems.append("L'écriture doit contenir au moins deux lignes")
    for index, line in enumerate(draft.lines, start=1):
        if line.debit > 0 and line.credit > 0:
            problems.append(f"Ligne {index} : débit ou crédit, pas les deux")
        elif line.debit <= 0 and line.credit <= 0:
            problems.append(f"Ligne {index} : un montant au débit ou au crédit est requis")
    return problems


def next_journal_status(status: JournalEntryStatus, action: JournalAction) -> Optional[JournalEntryStatus]:
    status = JournalEntryStatus(status)
    action = JournalAction(action)
    if (status, action) not in TRANSITIONS:
        logger.info("Transition refusée", extra={"extra": {"status": status.value, "action": action.value}})
        raise InvalidTransitionError(
            f"Action '{action.value}' impossible sur une écriture {status.value}"
        )
    return TRANSITIONS[(status, action)]


def can_edit_lines(status: JournalEntryStatus) -> bool:
    return JournalEntryStatus(status) == JournalEntryStatus.DRAFT


def post_journal_entry(draft: JournalEntryDraft) -> JournalEntryDraft:
    new_status = next_journal_status(draft.status, JournalAction.POST)
    result = validate_journal_draft(draft)
    violations = result.violations + check_postable_lines(draft)
    if violations:
        raise JournalValidationError(violations)
    return draft.model_copy(update={"status": new_status})


def void_journal_entry(draft: JournalEntryDraft) -> JournalEntryDraft:
    new_status = next_journal_status(draft.status, JournalAction.VOID)
    return draft.model_copy(update={"status": new_status})
