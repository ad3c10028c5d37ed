"""Indonesian (id-ID) formatting used on generated letters."""

from __future__ import annotations

from datetime import date, datetime
from decimal import Decimal, InvalidOperation

MONTHS_ID = (
    "Januari",
    "Februari",
    "Maret",
    "April",
    "Mei",
    "Juni",
    "Juli",
    "Agustus",
    "September",
    "Oktober",
    "November",
    "Desember",
)

_DATE_FORMATS = ("%Y-%m-%d", "%d/%m/%Y", "%d-%m-%Y")


def parse_date(value) -> date | None:
    """Parse a submitted date value; None when absent or not a date."""
    if value is None:
        return None
    if isinstance(value, datetime):
        return value.date()
    if isinstance(value, date):
        return value
    s = str(value).strip()
    if not s:
        return None
    for fmt in _DATE_FORMATS:
        try:
            return datetime.strptime(s, fmt).date()
        except ValueError:
            continue
    try:
        # ISO datetimes sent by browsers, e.g. 2024-03-05T00:00:00.000Z
        return datetime.fromisoformat(s.replace("Z", "+00:00")).date()
    except ValueError:
        return None


def format_date_long(value) -> str:
    """`2024-03-05` -> `5 Maret 2024`; empty string for absent/invalid input."""
    d = parse_date(value)
    if d is None:
        return ""
    return f"{d.day} {MONTHS_ID[d.month - 1]} {d.year}"


def format_year(value) -> str:
    d = parse_date(value)
    return str(d.year) if d else ""


def _group_thousands(digits: str) -> str:
    out = []
    while len(digits) > 3:
        out.insert(0, digits[-3:])
        digits = digits[:-3]
    out.insert(0, digits)
    return ".".join(out)


def parse_amount(value) -> Decimal | None:
    """Accept 15000000, "15000000", "15.000.000", "Rp 15.000.000,50"."""
    if value is None:
        return None
    if isinstance(value, (int, float, Decimal)) and not isinstance(value, bool):
        amount = Decimal(str(value))
        return amount if amount.is_finite() else None
    s = str(value).strip()
    if not s:
        return None
    s = s.replace("Rp", "").replace("rp", "").replace(" ", "").replace("\u00a0", "")
    if "," in s:
        # id-ID notation: dots group thousands, comma separates decimals
        s = s.replace(".", "").replace(",", ".")
    elif s.count(".") > 1 or (s.count(".") == 1 and len(s.split(".")[1]) == 3):
        s = s.replace(".", "")
    try:
        amount = Decimal(s)
    except InvalidOperation:
        return None
    return amount if amount.is_finite() else None


def format_currency(value) -> str:
    """15000000 -> `Rp 15.000.000,00`.

    Non-numeric input is returned trimmed so a free-text amount still shows up
    on the letter; empty input stays empty.
    """
    if value is None:
        return ""
    amount = parse_amount(value)
    if amount is None:
        return str(value).strip()
    sign = "-" if amount < 0 else ""
    quantized = abs(amount).quantize(Decimal("0.01"))
    whole, _, cents = f"{quantized:f}".partition(".")
    return f"{sign}Rp {_group_thousands(whole)},{cents or '00'}"
