"""
Display Formatters

Conversions between stored values and their Brazilian display forms:
CPF/phone/CEP masks, dd/mm/yyyy dates, R$ currency, file sizes and names.
"""

import re
import time
import unicodedata
import uuid
from datetime import date, datetime
from decimal import ROUND_HALF_UP, Decimal, InvalidOperation
from typing import Any

from app.modules.shared.validators import only_digits

_BYTE_UNITS = ("Bytes", "KB", "MB", "GB", "TB")


# ----------------------------------------------------------------------
# Documents and contact numbers
# ----------------------------------------------------------------------


def format_cpf(cpf: str | None) -> str:
    """'52998224725' -> '529.982.247-25'. Input without 11 digits is returned unchanged."""
    digits = only_digits(cpf)
    if len(digits) != 11:
        return cpf or ""
    return f"{digits[:3]}.{digits[3:6]}.{digits[6:9]}-{digits[9:]}"


def remove_cpf_mask(cpf: str | None) -> str:
    return only_digits(cpf)


def format_phone(phone: str | None) -> str:
    """'11987654321' -> '(11) 98765-4321'; '1134567890' -> '(11) 3456-7890'."""
    digits = only_digits(phone)
    if len(digits) == 11:
        return f"({digits[:2]}) {digits[2:7]}-{digits[7:]}"
    if len(digits) == 10:
        return f"({digits[:2]}) {digits[2:6]}-{digits[6:]}"
    return phone or ""


def remove_phone_mask(phone: str | None) -> str:
    return only_digits(phone)


def format_cep(cep: str | None) -> str:
    digits = only_digits(cep)
    if len(digits) != 8:
        return cep or ""
    return f"{digits[:5]}-{digits[5:]}"


def remove_cep_mask(cep: str | None) -> str:
    return only_digits(cep)


# ----------------------------------------------------------------------
# Dates
# ----------------------------------------------------------------------


def _to_datetime(value: Any) -> datetime | None:
    if isinstance(value, datetime):
        return value
    if isinstance(value, date):
        return datetime(value.year, value.month, value.day)
    if isinstance(value, str) and value.strip():
        try:
            return datetime.fromisoformat(value.strip())
        except ValueError:
            return None
    return None


def format_date(value: Any) -> str:
    """Date, datetime or ISO string -> 'dd/mm/yyyy'; empty string when unparseable."""
    parsed = _to_datetime(value)
    return parsed.strftime("%d/%m/%Y") if parsed else ""


def format_datetime(value: Any) -> str:
    parsed = _to_datetime(value)
    return parsed.strftime("%d/%m/%Y %H:%M") if parsed else ""


def format_datetime_full(value: Any) -> str:
    parsed = _to_datetime(value)
    return parsed.strftime("%d/%m/%Y %H:%M:%S") if parsed else ""


def parse_br_date(value: str | None) -> date | None:
    """'28/10/2025' -> date(2025, 10, 28); None for anything else."""
    if not value:
        return None
    try:
        return datetime.strptime(value.strip(), "%d/%m/%Y").date()
    except ValueError:
        return None


# ----------------------------------------------------------------------
# Numbers
# ----------------------------------------------------------------------


def _to_decimal(value: Any) -> Decimal | None:
    if value is None or value == "" or isinstance(value, bool):
        return None
    try:
        number = Decimal(str(value).strip())
    except (InvalidOperation, ValueError):
        return None
    return number if number.is_finite() else None


def _br_number(value: Decimal, decimals: int) -> str:
    quantum = Decimal(1).scaleb(-decimals)
    rounded = value.quantize(quantum, rounding=ROUND_HALF_UP)
    text = f"{abs(rounded):,.{decimals}f}"
    text = text.translate(str.maketrans({",": ".", ".": ","}))
    return f"-{text}" if rounded < 0 else text


def format_decimal(value: Any, decimals: int = 2) -> str:
    """1234.567 -> '1.234,57'."""
    number = _to_decimal(value)
    if number is None:
        number = Decimal(0)
    return _br_number(number, decimals)


def format_currency(value: Any) -> str:
    """1234.56 -> 'R$ 1.234,56'; empty or invalid input -> 'R$ 0,00'."""
    number = _to_decimal(value)
    if number is None:
        return "R$ 0,00"
    text = _br_number(number, 2)
    if text.startswith("-"):
        return f"-R$ {text[1:]}"
    return f"R$ {text}"


def format_bytes(size: int | float, decimals: int = 2) -> str:
    """1536 -> '1.5 KB'. Trailing zeros are dropped."""
    if not size or size < 0:
        return "0 Bytes"
    decimals = max(decimals, 0)
    index = 0
    while size >= 1024 ** (index + 1) and index < len(_BYTE_UNITS) - 1:
        index += 1
    value = round(size / 1024**index, decimals)
    text = f"{value:.{decimals}f}"
    if "." in text:
        text = text.rstrip("0").rstrip(".")
    return f"{text} {_BYTE_UNITS[index]}"


def format_semester(semester: int | None, year: int | None) -> str:
    if not semester or not year:
        return ""
    return f"{semester}º/{year}"


# ----------------------------------------------------------------------
# Text and file names
# ----------------------------------------------------------------------


def capitalize_words(text: str | None) -> str:
    """'joão da silva' -> 'João Da Silva'."""
    if not text:
        return ""
    return " ".join(word[:1].upper() + word[1:] for word in text.lower().split(" "))


def capitalize_first(text: str | None) -> str:
    if not text:
        return ""
    return text[:1].upper() + text[1:].lower()


def truncate_text(text: str | None, max_length: int) -> str:
    if not text or len(text) <= max_length:
        return text or ""
    return text[:max_length].strip() + "..."


def remove_accents(text: str | None) -> str:
    if not text:
        return ""
    normalized = unicodedata.normalize("NFD", text)
    return "".join(char for char in normalized if not unicodedata.combining(char))


def sanitize_filename(filename: str | None) -> str:
    """'Meu Documento.pdf' -> 'meu-documento.pdf'."""
    if not filename:
        return ""
    sanitized = remove_accents(filename).lower()
    sanitized = re.sub(r"\s+", "-", sanitized)
    sanitized = re.sub(r"[^a-z0-9\-_.]", "", sanitized)
    return re.sub(r"-+", "-", sanitized)


def generate_unique_filename(original_name: str | None) -> str:
    """Prefix the sanitized name with a millisecond timestamp and a random token."""
    prefix = f"{int(time.time() * 1000)}-{uuid.uuid4().hex}"
    if not original_name:
        return f"{prefix}.file"
    return f"{prefix}-{sanitize_filename(original_name)}"
