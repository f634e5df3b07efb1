# app/models/journal.py
from pydantic import BaseModel, Field, field_validator
from typing import List, Optional
from decimal import Decimal
from enum import Enum

from app.models.invoice import coerce_decimal


class JournalEntryStatus(str, Enum):
    DRAFT = "DRAFT"
    POSTED = "POSTED"
    VOIDED = "VOIDED"


class JournalAction(str, Enum):
    POST = "post"
    VOID = "void"
    DELETE = "delete"


class JournalLine(BaseModel):
    account_id: str = ""
    debit: Decimal = Decimal("0")
    credit: Decimal = Decimal("0")
    description: Optional[str] = None

    @field_validator("debit", "credit", mode="before")
    @classmethod
    def _permissive_amount(cls, value):
        return coerce_decimal(value)


def _two_empty_lines() -> List[JournalLine]:
    return [JournalLine(), JournalLine()]


class JournalEntryDraft(BaseModel):
    """Écriture comptable en cours de saisie. Créée avec deux lignes vides."""
    date: Optional[str] = None
    reference: Optional[str] = None
    description: Optional[str] = None
    status: JournalEntryStatus = JournalEntryStatus.DRAFT
    lines: List[JournalLine] = Field(default_factory=_two_empty_lines)


class JournalTotals(BaseModel):
    total_debit: Decimal
    total_credit: Decimal
    difference: Decimal
