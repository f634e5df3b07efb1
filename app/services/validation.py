# app/services/validation.py
import re
from datetime import date, datetime
from decimal import Decimal, InvalidOperation
from typing import Annotated, Iterable, List
from urllib.parse import urlparse

from pydantic import AfterValidator

from app.models.validation import ValidationResult

EMAIL_RE = re.compile(r"^[^\s@]+@[^\s@]+\.[^\s@]+$")
PHONE_RE = re.compile(r"^\+?[\d\s\-()]{7,20}$", re.ASCII)
CURRENCY_RE = re.compile(r"^[A-Z]{3}$")
POSTAL_CODE_RE = re.compile(r"^[\dA-Z\s\-]{3,10}$", re.IGNORECASE | re.ASCII)
TAX_ID_RE = re.compile(r"^[\dA-Z\-\s]{8,20}$", re.IGNORECASE | re.ASCII)
BANK_ACCOUNT_RE = re.compile(r"^[\d\-\s]{8,20}$", re.ASCII)
SSN_RE = re.compile(r"^\d{3}-\d{2}-\d{4}$", re.ASCII)
ACCOUNT_CODE_RE = re.compile(r"^[1-9]\d{0,3}(\.\d{1,3})*$", re.ASCII)

DOCUMENT_NUMBER_PATTERNS = {
    "invoice": re.compile(r"^INV-\d{4}-\d{6}$", re.ASCII),
    "bill": re.compile(r"^BILL-\d{4}-\d{6}$", re.ASCII),
    "journal_entry": re.compile(r"^JE-\d{4}-\d{6}$", re.ASCII),
    "customer": re.compile(r"^CUST-\d{6}$", re.ASCII),
    "vendor": re.compile(r"^VEND-\d{6}$", re.ASCII),
    "project": re.compile(r"^PROJ-\d{4}-\d{4}$", re.ASCII),
}

ROUTING_WEIGHTS = (3, 7, 1, 3, 7, 1, 3, 7, 1)


def _matches(pattern: re.Pattern, value) -> bool:
    return isinstance(value, str) and pattern.fullmatch(value) is not None


def is_valid_email(email: str) -> bool:
    return _matches(EMAIL_RE, email)


def is_valid_phone(phone: str) -> bool:
    return _matches(PHONE_RE, phone)


def is_valid_url(url: str) -> bool:
    try:
        parsed = urlparse(url)
    except (TypeError, ValueError, AttributeError):
        return False
    return bool(parsed.scheme and parsed.netloc)


def is_valid_currency(currency: str) -> bool:
    return _matches(CURRENCY_RE, currency)


def is_valid_postal_code(postal_code: str) -> bool:
    return _matches(POSTAL_CODE_RE, postal_code)


def is_valid_tax_id(tax_id: str) -> bool:
    return _matches(TAX_ID_RE, tax_id)


def is_valid_credit_card(card_number: str) -> bool:
    """Contrôle de Luhn sur 13 à 19 chiffres, espaces ignorés."""
    if not isinstance(card_number, str):
        return False
    digits = re.sub(r"\s", "", card_number)
    if not re.fullmatch(r"\d{13,19}", digits, re.ASCII):
        return False

    total = 0
    for position, char in enumerate(reversed(digits)):
        digit = int(char)
        if position % 2 == 1:
            digit *= 2
            if digit > 9:
                digit -= 9
        total += digit
    return total % 10 == 0


def is_valid_bank_account(account_number: str) -> bool:
    return _matches(BANK_ACCOUNT_RE, account_number)


def is_valid_routing_number(routing_number: str) -> bool:
    """Numéro ABA américain : 9 chiffres, somme pondérée 3-7-1 multiple de 10."""
    if not _matches(re.compile(r"^\d{9}$", re.ASCII), routing_number):
        return False
    total = sum(int(d) * w for d, w in zip(routing_number, ROUTING_WEIGHTS))
    return total % 10 == 0


def is_valid_ssn(ssn: str) -> bool:
    return _matches(SSN_RE, ssn)


def _as_datetime(value) -> datetime:
    if isinstance(value, datetime):
        return value
    return datetime.combine(value, datetime.min.time())


def is_not_future_date(value: date) -> bool:
    return _as_datetime(value) <= datetime.now()


def is_not_past_date(value: date) -> bool:
    return _as_datetime(value) >= datetime.now()


def is_valid_date_range(start: date, end: date) -> bool:
    return start < end


def _numeric_check(predicate, value) -> bool:
    # Valeur non numérique : False plutôt que TypeError
    try:
        return bool(predicate(value))
    except (TypeError, InvalidOperation):
        return False


def is_valid_percentage(percentage) -> bool:
    return _numeric_check(lambda v: 0 <= v <= 100, percentage)


def is_positive_number(value) -> bool:
    return _numeric_check(lambda v: v > 0, value)


def is_non_negative_number(value) -> bool:
    return _numeric_check(lambda v: v >= 0, value)


def is_valid_decimal_precision(value, precision: int = 2) -> bool:
    try:
        exponent = Decimal(str(value)).as_tuple().exponent
    except InvalidOperation:
        return False
    if not isinstance(exponent, int):
        return False
    return max(0, -exponent) <= precision


def is_valid_string_length(value: str, min_length: int, max_length: int) -> bool:
    return min_length <= len(value) <= max_length


def is_alphanumeric(value: str) -> bool:
    return _matches(re.compile(r"^[a-zA-Z0-9]+$"), value)


def is_letters_and_spaces(value: str) -> bool:
    return _matches(re.compile(r"^[a-zA-Z\s]+$"), value)


def is_numbers_only(value: str) -> bool:
    return _matches(re.compile(r"^\d+$", re.ASCII), value)


# Règles métier

BALANCE_TOLERANCE = Decimal("0.01")


def validate_balanced_entry(debit_total, credit_total) -> bool:
    return abs(debit_total - credit_total) <= BALANCE_TOLERANCE


def is_valid_account_code(account_code: str) -> bool:
    return _matches(ACCOUNT_CODE_RE, account_code)


def is_valid_invoice_number(number: str) -> bool:
    return _matches(DOCUMENT_NUMBER_PATTERNS["invoice"], number)


def is_valid_bill_number(number: str) -> bool:
    return _matches(DOCUMENT_NUMBER_PATTERNS["bill"], number)


def is_valid_journal_entry_number(number: str) -> bool:
    return _matches(DOCUMENT_NUMBER_PATTERNS["journal_entry"], number)


def is_valid_customer_number(number: str) -> bool:
    return _matches(DOCUMENT_NUMBER_PATTERNS["customer"], number)


def is_valid_vendor_number(number: str) -> bool:
    return _matches(DOCUMENT_NUMBER_PATTERNS["vendor"], number)


def is_valid_project_number(number: str) -> bool:
    return _matches(DOCUMENT_NUMBER_PATTERNS["project"], number)


# Contrôles composés

def validate_address(street1: str, city: str, postal_code: str, country: str) -> ValidationResult:
    errors = []
    if not street1.strip():
        errors.append("L'adresse est obligatoire")
    if not city.strip():
        errors.append("La ville est obligatoire")
    if not postal_code.strip():
        errors.append("Le code postal est obligatoire")
    elif not is_valid_postal_code(postal_code):
        errors.append("Format de code postal invalide")
    if not country.strip():
        errors.append("Le pays est obligatoire")
    return ValidationResult.from_lists(errors)


def validate_contact(first_name: str, last_name: str, email: str, phone: str = None) -> ValidationResult:
    errors = []
    if not first_name.strip():
        errors.append("Le prénom est obligatoire")
    if not last_name.strip():
        errors.append("Le nom est obligatoire")
    if not email.strip():
        errors.append("L'email est obligatoire")
    elif not is_valid_email(email):
        errors.append("Format d'email invalide")
    if phone and not is_valid_phone(phone):
        errors.append("Format de téléphone invalide")
    return ValidationResult.from_lists(errors)


def validate_financial_amount(amount, currency: str) -> ValidationResult:
    errors = []
    if not is_non_negative_number(amount):
        errors.append("Le montant doit être positif ou nul")
    if not is_valid_decimal_precision(amount, 2):
        errors.append("Le montant ne peut pas avoir plus de 2 décimales")
    if not is_valid_currency(currency):
        errors.append("Code devise invalide")
    return ValidationResult.from_lists(errors)


def sanitize_input(value: str) -> str:
    return re.sub(r"\s+", " ", value.strip())


def format_validation_error(field: str, message: str) -> str:
    return f"{field}: {message}"


def combine_validation_results(results: Iterable[ValidationResult]) -> ValidationResult:
    results = list(results)
    violations: List[str] = [v for r in results for v in r.violations]
    warnings: List[str] = [w for r in results for w in r.warnings]
    return ValidationResult(
        is_valid=all(r.is_valid for r in results),
        violations=violations,
        warnings=warnings,
    )


# Type pydantic pour les modèles d'API

def _check(predicate, message):
    def validator(value):
        if not predicate(value):
            raise ValueError(message)
        return value
    return AfterValidator(validator)


CurrencyCode = Annotated[str, _check(is_valid_currency, "Code devise invalide")]
