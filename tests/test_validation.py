from datetime import date
from decimal import Decimal

import pytest

from app.models.validation import ValidationResult
from app.services import validation as v


def test_contact_fields():
    """Email, téléphone, URL."""
    assert v.is_valid_email("compta@example.com")
    assert not v.is_valid_email("compta@example")
    assert not v.is_valid_email("compta @example.com")
    assert v.is_valid_phone("+33 (1) 23-45-67-89")
    assert not v.is_valid_phone("12345")
    assert v.is_valid_url("https://example.com/factures")
    assert not v.is_valid_url("example.com")
    assert not v.is_valid_url(None)


def test_codes():
    """Devise, code postal, identifiant fiscal, SSN."""
    assert v.is_valid_currency("EUR")
    assert not v.is_valid_currency("eur")
    assert not v.is_valid_currency("EURO")
    assert v.is_valid_postal_code("75001")
    assert v.is_valid_postal_code("sw1a 1aa")
    assert not v.is_valid_postal_code("!!")
    assert v.is_valid_tax_id("FR12345678900")
    assert not v.is_valid_tax_id("123")
    assert v.is_valid_ssn("123-45-6789")
    assert not v.is_valid_ssn("123456789")


def test_credit_card_luhn():
    """Contrôle de Luhn."""
    assert v.is_valid_credit_card("4111 1111 1111 1111")
    assert not v.is_valid_credit_card("4111 1111 1111 1112")
    assert not v.is_valid_credit_card("4111")


def test_routing_number_checksum():
    """Somme pondérée ABA."""
    assert v.is_valid_routing_number("021000021")
    assert not v.is_valid_routing_number("021000022")
    assert not v.is_valid_routing_number("02100002")


def test_digits_are_ascii_only():
    """Les chiffres non ASCII ne sont pas des chiffres valides."""
    assert not v.is_valid_routing_number("٠٢١٠٠٠٠٢١")
    assert not v.is_valid_invoice_number("INV-٢٠٢٤-٠٠٠٠٠١")
    assert not v.is_numbers_only("٤٢")
    assert not v.is_valid_ssn("١٢٣-٤٥-٦٧٨٩")
    assert not v.is_valid_credit_card("٤١١١ ١١١١ ١١١١ ١١١١")


def test_bank_account():
    """Numéro de compte bancaire."""
    assert v.is_valid_bank_account("1234-5678-90")
    assert not v.is_valid_bank_account("12AB5678")


def test_numeric_ranges():
    """Pourcentage, positivité, précision décimale."""
    assert v.is_valid_percentage(0)
    assert v.is_valid_percentage(100)
    assert not v.is_valid_percentage(100.5)
    assert v.is_positive_number(0.01)
    assert not v.is_positive_number(0)
    assert v.is_non_negative_number(0)
    assert v.is_valid_decimal_precision(10.25)
    assert not v.is_valid_decimal_precision(10.255)
    assert v.is_valid_decimal_precision(10.255, 3)
    assert v.is_valid_decimal_precision(Decimal("1E+2"))


@pytest.mark.parametrize("check", [v.is_valid_percentage, v.is_positive_number, v.is_non_negative_number])
@pytest.mark.parametrize("value", ["50", None, [1]])
def test_numeric_predicates_reject_non_numbers(check, value):
    """Valeur non numérique : False, jamais d'exception."""
    assert check(value) is False


def test_string_helpers():
    """Longueur et jeux de caractères."""
    assert v.is_valid_string_length("abc", 1, 3)
    assert not v.is_valid_string_length("abcd", 1, 3)
    assert v.is_alphanumeric("Abc123")
    assert not v.is_alphanumeric("Abc-123")
    assert v.is_letters_and_spaces("Jean Dupont")
    assert v.is_numbers_only("0042")
    assert not v.is_numbers_only("42a")


def test_dates():
    """Plages de dates."""
    assert v.is_valid_date_range(date(2024, 1, 1), date(2024, 2, 1))
    assert not v.is_valid_date_range(date(2024, 2, 1), date(2024, 2, 1))
    assert v.is_not_future_date(date(2000, 1, 1))
    assert not v.is_not_past_date(date(2000, 1, 1))


def test_balanced_entry():
    """Équilibre débit / crédit à 0.01 près."""
    assert v.validate_balanced_entry(Decimal("100"), Decimal("99.99"))
    assert not v.validate_balanced_entry(Decimal("100"), Decimal("99.98"))
    assert v.validate_balanced_entry(100.0, 100.0)


def test_account_code():
    """Codes du plan comptable."""
    assert v.is_valid_account_code("1000")
    assert v.is_valid_account_code("1000.10")
    assert not v.is_valid_account_code("0100")
    assert not v.is_valid_account_code("12345")


@pytest.mark.parametrize("check, good, bad", [
    (v.is_valid_invoice_number, "INV-2024-000123", "INV-24-1"),
    (v.is_valid_bill_number, "BILL-2024-000123", "BIL-2024-000123"),
    (v.is_valid_journal_entry_number, "JE-2024-000123", "JE-2024-123"),
    (v.is_valid_customer_number, "CUST-000001", "CUST-1"),
    (v.is_valid_vendor_number, "VEND-000001", "VENDOR-000001"),
    (v.is_valid_project_number, "PROJ-2024-0001", "PROJ-2024-000001"),
])
def test_document_numbers(check, good, bad):
    """Formats des numéros de documents."""
    assert check(good)
    assert not check(bad)


def test_validate_address():
    """Adresse incomplète et code postal invalide."""
    ok = v.validate_address("12 rue de la Paix", "Paris", "75001", "FR")
    assert ok.is_valid
    result = v.validate_address("12 rue de la Paix", " ", "!!", "FR")
    assert result.violations == ["La ville est obligatoire", "Format de code postal invalide"]


def test_validate_contact():
    """Contact : email obligatoire et téléphone optionnel."""
    assert v.validate_contact("Jean", "Dupont", "jean@example.com").is_valid
    result = v.validate_contact("Jean", "", "jean@", phone="12")
    assert result.violations == [
        "Le nom est obligatoire",
        "Format d'email invalide",
        "Format de téléphone invalide",
    ]


def test_validate_financial_amount():
    """Montant négatif, trop de décimales, devise invalide."""
    assert v.validate_financial_amount(10.5, "EUR").is_valid
    result = v.validate_financial_amount(-1.234, "eu")
    assert len(result.violations) == 3


def test_helpers():
    """Nettoyage et combinaison des résultats."""
    assert v.sanitize_input("  Facture   n°  12 ") == "Facture n° 12"
    assert v.format_validation_error("email", "invalide") == "email: invalide"

    combined = v.combine_validation_results([
        ValidationResult.from_lists([]),
        ValidationResult.from_lists(["a"], ["w"]),
        ValidationResult.from_lists(["b"]),
    ])
    assert not combined.is_valid
    assert combined.violations == ["a", "b"]
    assert combined.warnings == ["w"]
