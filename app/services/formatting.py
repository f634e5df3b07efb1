# app/services/formatting.py
from decimal import Decimal, ROUND_HALF_UP

from babel import Locale
from babel.numbers import format_currency as babel_format_currency
from babel.numbers import format_decimal, format_percent, get_currency_precision, list_currencies, parse_pattern

DEFAULT_CURRENCY = "USD"
DEFAULT_LOCALE = "en_US"

# Devises prises en charge : code -> (symbole, nombre de décimales)
CURRENCIES = {
    "USD": ("$", 2), "EUR": ("€", 2), "GBP": ("£", 2), "CAD": ("C$", 2),
    "AUD": ("A$", 2), "JPY": ("¥", 0), "CHF": ("CHF", 2), "CNY": ("¥", 2),
    "INR": ("₹", 2), "BRL": ("R$", 2), "MXN": ("$", 2), "KRW": ("₩", 0),
    "SGD": ("S$", 2), "HKD": ("HK$", 2), "SEK": ("kr", 2), "NOK": ("kr", 2),
    "DKK": ("kr", 2), "PLN": ("zł", 2), "CZK": ("Kč", 2), "HUF": ("Ft", 0),
    "RUB": ("₽", 2), "TRY": ("₺", 2), "ZAR": ("R", 2),
}


def _locale(locale: str) -> Locale:
    return Locale.parse(locale.replace("-", "_"))


def _quantize(value, decimals: int) -> Decimal:
    return Decimal(str(value)).quantize(Decimal(1).scaleb(-decimals), rounding=ROUND_HALF_UP)


def _pattern(base, decimals: int):
    # Copie du motif CLDR de la locale avec un nombre fixe de décimales
    pattern = parse_pattern(base.pattern)
    pattern.frac_prec = (decimals, decimals)
    return pattern


def is_supported_currency(code: str) -> bool:
    return code.upper() in CURRENCIES


def _is_iso_currency(code: str) -> bool:
    return code in list_currencies()


def currency_decimal_places(code: str) -> int:
    code = code.upper()
    if code in CURRENCIES:
        return CURRENCIES[code][1]
    if _is_iso_currency(code):
        return get_currency_precision(code)
    return 2


def get_currency_symbol(code: str) -> str:
    entry = CURRENCIES.get(code.upper())
    return entry[0] if entry else code


def format_currency(amount, currency: str = DEFAULT_CURRENCY, locale: str = DEFAULT_LOCALE) -> str:
    """
    Montant formaté selon la locale, 0 décimale pour JPY/KRW/HUF, 2 sinon.
    Hors tableau, les codes ISO connus de babel gardent leurs décimales CLDR ;
    un code inconnu renvoie le montant brut.
    """
    code = currency.upper()
    if code not in CURRENCIES and not _is_iso_currency(code):
        return str(amount)
    decimals = currency_decimal_places(code)
    loc = _locale(locale)
    return babel_format_currency(
        _quantize(amount, decimals),
        code,
        format=_pattern(loc.currency_formats["standard"], decimals),
        locale=loc,
        currency_digits=False,
    )


def format_percentage(value, decimals: int = 2, locale: str = DEFAULT_LOCALE) -> str:
    """`value` est exprimé en pourcentage : 12.5 -> '12.50%'."""
    loc = _locale(locale)
    return format_percent(
        _quantize(value, decimals) / 100,
        format=_pattern(loc.percent_formats[None], decimals),
        locale=loc,
    )


def format_number(value, decimals: int = 2, locale: str = DEFAULT_LOCALE) -> str:
    loc = _locale(locale)
    return format_decimal(
        _quantize(value, decimals),
        format=_pattern(loc.decimal_formats[None], decimals),
        locale=loc,
    )
