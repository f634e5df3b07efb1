from decimal import Decimal

from app.services import formatting as fmt


def test_currency_two_decimals():
    """USD : deux décimales, séparateur de milliers."""
    assert fmt.format_currency(1234.5) == "$1,234.50"
    assert fmt.format_currency(Decimal("0.005"), "USD") == "$0.01"


def test_currency_without_decimals():
    """JPY, KRW et HUF s'affichent sans décimales."""
    assert fmt.format_currency(1234.5, "JPY") == "¥1,235"
    assert fmt.format_currency(1234.4, "jpy") == "¥1,234"
    assert fmt.currency_decimal_places("KRW") == 0
    assert fmt.currency_decimal_places("HUF") == 0
    assert fmt.currency_decimal_places("EUR") == 2


def test_currency_follows_locale():
    """La locale fixe les séparateurs et la position du symbole."""
    assert fmt.format_currency(1234.5, "EUR", "de_DE") == "1.234,50\xa0€"
    assert fmt.format_currency(1234.5, "USD", "en-US") == "$1,234.50"


def test_unknown_currency_is_plain_text():
    """Devise non prise en charge : montant brut."""
    assert fmt.format_currency(1234.5, "XYZ") == "1234.5"
    assert not fmt.is_supported_currency("XYZ")
    assert fmt.is_supported_currency("chf")


def test_currency_symbols():
    """Symboles du tableau des devises."""
    assert fmt.get_currency_symbol("EUR") == "€"
    assert fmt.get_currency_symbol("XYZ") == "XYZ"


def test_percentage():
    """La valeur est exprimée en pourcentage."""
    assert fmt.format_percentage(12.5) == "12.50%"
    assert fmt.format_percentage(12.5, 0) == "13%"


def test_number():
    """Nombre avec séparateurs de milliers."""
    assert fmt.format_number(1234.567) == "1,234.57"
    assert fmt.format_number(1234.5, 0) == "1,235"


def test_iso_currency_outside_table():
    """Code ISO hors tableau : formaté par babel avec ses décimales CLDR."""
    assert fmt.format_currency(1234.5, "NZD") == "NZ$1,234.50"
    assert fmt.currency_decimal_places("NZD") == 2
    assert fmt.currency_decimal_places("CLP") == 0
    assert not fmt.is_supported_currency("NZD")
