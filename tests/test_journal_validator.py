from decimal import Decimal

import pytest

from app.models.journal import JournalAction, JournalEntryDraft, JournalEntryStatus, JournalLine
from app.services.journal_validator import (
    InvalidTransitionError,
    JournalValidationError,
    can_edit_lines,
    check_postable_lines,
    journal_totals,
    next_journal_status,
    post_journal_entry,
    validate_journal_draft,
    void_journal_entry,
)

BALANCE_MSG = "Le total des débits doit être égal au total des crédits"


def _draft(lines, **overrides):
    data = {
        "date": "2024-06-01",
        "reference": "JE-2024-000001",
        "description": "Encaissement client",
        "lines": lines,
    }
    data.update(overrides)
    return JournalEntryDraft(**data)


def _balanced():
    return _draft([
        {"account_id": "1000", "debit": 100, "credit": 0},
        {"account_id": "4000", "debit": 0, "credit": 100},
    ])


def test_balanced_draft_is_valid():
    """Débit 100 / crédit 100 : écriture valide."""
    result = validate_journal_draft(_balanced())
    assert result.is_valid
    assert result.violations == []


def test_unbalanced_draft():
    """Débit 100 / crédit 99 : violation d'équilibre."""
    draft = _draft([
        {"account_id": "1000", "debit": 100, "credit": 0},
        {"account_id": "4000", "debit": 0, "credit": 99},
    ])
    result = validate_journal_draft(draft)
    assert not result.is_valid
    assert BALANCE_MSG in result.violations


def test_debit_only_lines_need_a_credit():
    """Deux lignes au débit : le contrôle du crédit se déclenche indépendamment."""
    draft = _draft([
        {"account_id": "1000", "debit": 50, "credit": 0},
        {"account_id": "1010", "debit": 50, "credit": 0},
    ])
    result = validate_journal_draft(draft)
    assert not result.is_valid
    assert "Au moins un montant au crédit est requis" in result.violations
    assert "Au moins un montant au débit est requis" not in result.violations


def test_empty_draft_reports_everything_in_order():
    """Un brouillon vide cumule toutes les violations, dans l'ordre."""
    result = validate_journal_draft(JournalEntryDraft())
    assert result.violations == [
        "La date est obligatoire",
        "La référence est obligatoire",
        "La description est obligatoire",
        "Compte obligatoire pour la ligne 1",
        "Compte obligatoire pour la ligne 2",
        "Au moins un montant au débit est requis",
        "Au moins un montant au crédit est requis",
    ]


def test_rounding_noise_is_tolerated():
    """Un écart inférieur ou égal à 0.01 est toléré, pas au-delà."""
    within = _draft([
        {"account_id": "1000", "debit": "100", "credit": 0},
        {"account_id": "4000", "debit": 0, "credit": "99.99"},
    ])
    beyond = _draft([
        {"account_id": "1000", "debit": "100", "credit": 0},
        {"account_id": "4000", "debit": 0, "credit": "99.98"},
    ])
    assert validate_journal_draft(within).is_valid
    assert BALANCE_MSG in validate_journal_draft(beyond).violations


def test_validator_does_not_mutate_draft():
    """Le contrôle ne modifie pas le brouillon."""
    draft = _balanced()
    before = draft.model_dump()
    validate_journal_draft(draft)
    assert draft.model_dump() == before


def test_none_draft_fails_fast():
    """None est une erreur de programmation."""
    with pytest.raises(TypeError):
        validate_journal_draft(None)


def test_blank_amounts_are_zero():
    """Les montants vides du formulaire valent 0."""
    line = JournalLine(account_id="1000", debit="", credit="abc")
    assert line.debit == Decimal("0")
    assert line.credit == Decimal("0")


def test_new_draft_has_two_empty_lines():
    """Un nouveau brouillon démarre avec deux lignes vides."""
    draft = JournalEntryDraft()
    assert len(draft.lines) == 2
    assert draft.status == JournalEntryStatus.DRAFT


def test_journal_totals():
    """Totaux affichés sous le formulaire."""
    totals = journal_totals(_draft([
        {"account_id": "1000", "debit": "100.50", "credit": 0},
        {"account_id": "4000", "debit": 0, "credit": "100"},
    ]))
    assert totals.total_debit == Decimal("100.50")
    assert totals.total_credit == Decimal("100.00")
    assert totals.difference == Decimal("0.50")


def test_allowed_transitions():
    """DRAFT -> POSTED -> VOIDED, et suppression d'un brouillon."""
    assert next_journal_status(JournalEntryStatus.DRAFT, JournalAction.POST) == JournalEntryStatus.POSTED
    assert next_journal_status("POSTED", "void") == JournalEntryStatus.VOIDED
    assert next_journal_status("DRAFT", "delete") is None


@pytest.mark.parametrize("status, action", [
    ("POSTED", "post"),
    ("POSTED", "delete"),
    ("VOIDED", "void"),
    ("VOIDED", "post"),
    ("DRAFT", "void"),
])
def test_forbidden_transitions(status, action):
    """Aucun retour en brouillon, POSTED et VOIDED sont figés."""
    with pytest.raises(InvalidTransitionError):
        next_journal_status(status, action)


def test_only_drafts_are_editable():
    """Seul un brouillon accepte des modifications de lignes."""
    assert can_edit_lines("DRAFT")
    assert not can_edit_lines(JournalEntryStatus.POSTED)
    assert not can_edit_lines(JournalEntryStatus.VOIDED)


def test_post_valid_entry():
    """Publication d'une écriture équilibrée : copie au statut POSTED."""
    draft = _balanced()
    posted = post_journal_entry(draft)
    assert posted.status == JournalEntryStatus.POSTED
    assert draft.status == JournalEntryStatus.DRAFT


def test_post_invalid_entry_raises_with_violations():
    """Une écriture invalide n'est pas publiée."""
    draft = _draft([
        {"account_id": "1000", "debit": 100, "credit": 0},
        {"account_id": "", "debit": 0, "credit": 90},
    ])
    with pytest.raises(JournalValidationError) as exc:
        post_journal_entry(draft)
    assert "Compte obligatoire pour la ligne 2" in exc.value.violations
    assert BALANCE_MSG in exc.value.violations


def test_post_rejects_line_with_both_sides():
    """Une ligne ne porte qu'un seul sens à la publication."""
    draft = _draft([
        {"account_id": "1000", "debit": 100, "credit": 100},
        {"account_id": "4000", "debit": 0, "credit": 0},
    ])
    assert validate_journal_draft(draft).is_valid
    problems = check_postable_lines(draft)
    assert "Ligne 1 : débit ou crédit, pas les deux" in problems
    assert "Ligne 2 : un montant au débit ou au crédit est requis" in problems
    with pytest.raises(JournalValidationError):
        post_journal_entry(draft)


def test_post_requires_two_lines():
    """Une écriture d'une seule ligne ne peut pas être publiée."""
    draft = _draft([{"account_id": "1000", "debit": 0, "credit": 0}])
    assert "L'écriture doit contenir au moins deux lignes" in check_postable_lines(draft)


def test_void_posted_entry():
    """Annulation d'une écriture publiée."""
    posted = post_journal_entry(_balanced())
    assert void_journal_entry(posted).status == JournalEntryStatus.VOIDED
    with pytest.raises(InvalidTransitionError):
        void_journal_entry(_balanced())
