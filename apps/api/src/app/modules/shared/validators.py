"""
Field Validators

Pure predicates for Brazilian-locale input (CPF, phone, dates) and academic
fields (course codes, semesters, grades). All return a bool and never raise.
"""

import re
from datetime import date, datetime
from decimal import Decimal, InvalidOperation
from typing import Any

_NON_DIGITS = re.compile(r"\D")
_ONLY_LETTERS = re.compile(r"^[a-zA-ZÀ-ÿ\s]+$")
_COURSE_CODE = re.compile(r"^[A-Z]{2,4}\d{2,4}$")


def only_digits(value: str | None) -> str:
    return _NON_DIGITS.sub("", value or "")


def _cpf_check_digit(digits: list[int], length: int) -> int:
    # Weights run from length + 1 down to 2
    total = sum(digit * (length + 1 - index) for index, digit in enumerate(digits[:length]))
    remainder = 11 - total % 11
    return 0 if remainder >= 10 else remainder


def validate_cpf(cpf: str | None) -> bool:
    """
    Validate a CPF (Cadastro de Pessoas Físicas) number.

    Accepts masked ("529.982.247-25") or bare input. Rejects wrong length,
    repeated-digit sequences such as "111.111.111-11", and wrong check digits.
    """
    digits_str = only_digits(cpf)
    if len(digits_str) != 11:
        return False
    if digits_str == digits_str[0] * 11:
        return False

    digits = [int(d) for d in digits_str]
    return _cpf_check_digit(digits, 9) == digits[9] and _cpf_check_digit(digits, 10) == digits[10]


def validate_phone(phone: str | None) -> bool:
    """10 digits (landline with area code) or 11 (mobile), not all identical."""
    digits = only_digits(phone)
    if len(digits) not in (10, 11):
        return False
    return digits != digits[0] * len(digits)


def validate_cep(cep: str | None) -> bool:
    return len(only_digits(cep)) == 8


def validate_strong_password(password: str | None) -> bool:
    """At least 8 characters with an uppercase letter, a lowercase letter and a digit."""
    if not password or len(password) < 8:
        return False
    return (
        re.search(r"[A-Z]", password) is not None
        and re.search(r"[a-z]", password) is not None
        and re.search(r"\d", password) is not None
    )


def _to_date(value: Any) -> date | None:
    if isinstance(value, datetime):
        return value.date()
    if isinstance(value, date):
        return value
    if isinstance(value, str) and value.strip():
        text = value.strip()
        try:
            return datetime.fromisoformat(text).date()
        except ValueError:
            pass
        try:
            return datetime.strptime(text, "%d/%m/%Y").date()
        except ValueError:
            return None
    return None


def validate_birth_date(value: Any, min_age: int = 16, today: date | None = None) -> bool:
    """Birth date must parse, not be in the future, and give an age of at least min_age."""
    birth = _to_date(value)
    if birth is None:
        return False

    today = today or date.today()
    if birth > today:
        return False

    age = today.year - birth.year
    if (today.month, today.day) < (birth.month, birth.day):
        age -= 1
    return age >= min_age


def validate_date_range(start: Any, end: Any) -> bool:
    start_date = _to_date(start)
    end_date = _to_date(end)
    if start_date is None or end_date is None:
        return False
    return start_date <= end_date


def validate_only_letters(text: str | None) -> bool:
    """Letters (accented included) and spaces only."""
    if not text:
        return False
    return _ONLY_LETTERS.match(text) is not None


def validate_course_code(code: str | None) -> bool:
    """2-4 uppercase letters followed by 2-4 digits, e.g. "ADS101"."""
    if not code:
        return False
    return _COURSE_CODE.match(code) is not None


def _to_decimal(value: Any) -> Decimal | None:
    if value is None or isinstance(value, bool):
        return None
    try:
        number = Decimal(str(value).strip())
    except (InvalidOperation, ValueError):
        return None
    if not number.is_finite():
        return None
    return number


def validate_range(value: Any, min_value: float, max_value: float) -> bool:
    """Inclusive numeric range check; non-numeric input is invalid."""
    number = _to_decimal(value)
    if number is None:
        return False
    return Decimal(str(min_value)) <= number <= Decimal(str(max_value))


def validate_semester(semester: Any) -> bool:
    number = _to_decimal(semester)
    if number is None or number != number.to_integral_value():
        return False
    return 1 <= number <= 12


def validate_grade(grade: Any) -> bool:
    """Grade between 0 and 10 with at most two decimal places."""
    number = _to_decimal(grade)
    if number is None or not (0 <= number <= 10):
        return False
    return -number.normalize().as_tuple().exponent <= 2


def validate_file_extension(filename: str | None, allowed_extensions: list[str]) -> bool:
    """Case-insensitive extension check; `allowed_extensions` may include the dot or not."""
    if not filename or "." not in filename:
        return False
    extension = filename.rsplit(".", 1)[1].lower()
    allowed = {ext.lower().lstrip(".") for ext in allowed_extensions}
    return extension in allowed
