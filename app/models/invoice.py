# app/models/invoice.py
from pydantic import BaseModel, Field, ValidationInfo, field_validator
from typing import List, Optional
from decimal import Decimal, InvalidOperation
from enum import Enum

from app.services.validation import CurrencyCode


def coerce_decimal(value) -> Decimal:
    """Convertit une saisie de formulaire en Decimal. Vide ou illisible -> 0."""
    if value is None or isinstance(value, bool):
        return Decimal("0")
    if isinstance(value, Decimal):
        result = value
    else:
        text = str(value).strip()
        if not text:
            return Decimal("0")
        try:
            result = Decimal(text)
        except (InvalidOperation, ValueError):
            return Decimal("0")
    if not result.is_finite():
        return Decimal("0")
    return result


class DocumentType(str, Enum):
    INVOICE = "INVOICE"
    BILL = "BILL"


class InvoiceType(str, Enum):
    SALE = "SALE"
    CREDIT_MEMO = "CREDIT_MEMO"


class InvoiceStatus(str, Enum):
    DRAFT = "DRAFT"
    SENT = "SENT"
    PAID = "PAID"
    OVERDUE = "OVERDUE"
    VOIDED = "VOIDED"


class BillStatus(str, Enum):
    DRAFT = "DRAFT"
    RECEIVED = "RECEIVED"
    PAID = "PAID"
    OVERDUE = "OVERDUE"
    VOIDED = "VOIDED"


FINAL_STATUSES = {"PAID", "VOIDED"}


class LineItem(BaseModel):
    description: str = ""
    quantity: Decimal = Decimal("0")
    unit_price: Decimal = Decimal("0")
    tax_rate: Decimal = Decimal("0")
    discount_rate: Decimal = Decimal("0")
    linked_catalog_item_id: Optional[str] = None
    # Toujours recalculé par recompute(), jamais saisi
    total: Decimal = Decimal("0")

    @field_validator("quantity", "unit_price", "tax_rate", "discount_rate", "total", mode="before")
    @classmethod
    def _permissive_number(cls, value):
        return coerce_decimal(value)


class LineAmounts(BaseModel):
    subtotal: Decimal
    discount: Decimal
    tax: Decimal
    total: Decimal


class DocumentTotals(BaseModel):
    subtotal: Decimal
    tax_amount: Decimal
    discount_amount: Decimal
    total: Decimal


class Document(BaseModel):
    """Facture client ou facture fournisseur (bill) avec ses lignes."""
    document_type: DocumentType = DocumentType.INVOICE
    number: str = ""
    counterparty_id: str = ""
    date: Optional[str] = None
    due_date: Optional[str] = None
    status: str = "DRAFT"
    invoice_type: InvoiceType = InvoiceType.SALE
    currency: CurrencyCode = "USD"
    exchange_rate: Decimal = Decimal("1")
    notes: Optional[str] = None
    terms: Optional[str] = None
    lines: List[LineItem] = Field(default_factory=list)

    subtotal: Decimal = Decimal("0")
    tax_amount: Decimal = Decimal("0")
    discount_amount: Decimal = Decimal("0")
    total: Decimal = Decimal("0")

    @field_validator("status")
    @classmethod
    def _known_status(cls, value: str, info: ValidationInfo) -> str:
        value = value.upper()
        doc_type = info.data.get("document_type", DocumentType.INVOICE)
        allowed = BillStatus if doc_type == DocumentType.BILL else InvoiceStatus
        if value not in allowed.__members__:
            raise ValueError(f"Statut inconnu pour {doc_type.value} : {value}")
        return value

    @property
    def is_final(self) -> bool:
        return self.status in FINAL_STATUSES
