"""
Semantic field rules per entity type.

FieldValidator works on row-shaped mappings (header → string) so the same
rules apply to raw file rows and to entities re-serialized by a processor.
"""

from __future__ import annotations

import re
from decimal import Decimal, InvalidOperation
from typing import Callable, Mapping

from importer.core.constants import EntityType, ROLE_SEPARATOR, UserRole
from importer.validation.outcome import ValidationOutcome

EMAIL_PATTERN = re.compile(r"^[A-Za-z0-9+_.-]+@[A-Za-z0-9.-]+\.[A-Za-z]{2,}$")
RUT_PATTERN = re.compile(r"^[0-9]{7,8}-[0-9Kk]$")
PHONE_PATTERN = re.compile(r"^[+]?[0-9]{8,15}$")
PRODUCT_CODE_PATTERN = re.compile(r"^[A-Z0-9]{3,20}$")
USERNAME_PATTERN = re.compile(r"^[a-zA-Z0-9._-]{3,20}$")

MAX_NAME_LENGTH = 50
MIN_PASSWORD_LENGTH = 6
MAX_PASSWORD_LENGTH = 100
MAX_PRICE = Decimal("999999.99")
MAX_STOCK = 999999

ALLOWED_ROLES = frozenset(role.value for role in UserRole)


# ─── RUT (Chilean national id) ────────────────────────

def rut_check_digit(body: str) -> str:
    """Modulo-11 check digit for the numeric part of a RUT."""
    total = 0
    multiplier = 2
    for digit in reversed(body):
        total += int(digit) * multiplier
        multiplier = 2 if multiplier == 7 else multiplier + 1
    remainder = 11 - (total % 11)
    if remainder == 11:
        return "0"
    if remainder == 10:
        return "K"
    return str(remainder)


def normalize_rut(rut: str) -> str:
    """Drop thousands separators and spaces, upper-case the check digit."""
    return rut.replace(".", "").replace(" ", "").strip().upper()


def is_valid_rut(rut: str) -> bool:
    candidate = normalize_rut(rut)
    if not RUT_PATTERN.match(candidate):
        return False
    body, check = candidate.split("-")
    return rut_check_digit(body) == check


# ─── Validator ────────────────────────────────────────

class FieldValidator:
    """
    Pattern and range rules keyed by entity type.

    Usage::

        outcome = FieldValidator().validate_row(row, "cliente", row_number=3)
        if not outcome.valid:
            ...
    """

    def __init__(self) -> None:
        self._rules: dict[str, Callable[[Mapping[str, str], list[str], list[str]], None]] = {
            EntityType.CLIENT.value: self._client_rules,
            EntityType.PRODUCT.value: self._product_rules,
            EntityType.USER.value: self._user_rules,
        }

    @property
    def entity_types(self) -> list[str]:
        return sorted(self._rules)

    def validate_row(
        self,
        row: Mapping[str, str],
        entity_type: str,
        row_number: int | None = None,
    ) -> ValidationOutcome:
        rules = self._rules.get(entity_type.strip().lower())
        if rules is None:
            return ValidationOutcome.failure(
                f"Unknown entity type: {entity_type}", row_number=row_number
            )

        errors: list[str] = []
        warnings: list[str] = []
        rules(row, errors, warnings)
        return ValidationOutcome.build(errors=errors, warnings=warnings, row_number=row_number)

    # ─── Per-entity rules ──────────────────────────────

    def _client_rules(self, row: Mapping[str, str], errors: list[str], warnings: list[str]) -> None:
        self._require(row, ("nombre", "apellido", "email", "rut"), errors)
        self._check_email(_value(row, "email"), errors)

        rut = _value(row, "rut")
        if rut and not is_valid_rut(rut):
            errors.append(f"Invalid RUT: {rut}")

        phone = _value(row, "telefono")
        if phone and not PHONE_PATTERN.match(phone):
            errors.append(f"Invalid phone number: {phone}")

        for field_name in ("nombre", "apellido"):
            if len(_value(row, field_name)) > MAX_NAME_LENGTH:
                errors.append(f"Field '{field_name}' is too long (max {MAX_NAME_LENGTH} characters)")

    def _product_rules(self, row: Mapping[str, str], errors: list[str], warnings: list[str]) -> None:
        self._require(row, ("codigo", "nombre", "precio"), errors)

        code = _value(row, "codigo").upper()
        if code and not PRODUCT_CODE_PATTERN.match(code):
            errors.append(
                f"Invalid product code: {code}. "
                "Use 3-20 upper-case letters or digits"
            )

        price_text = _value(row, "precio")
        if price_text:
            price = _parse_decimal(price_text)
            if price is None:
                errors.append(f"Invalid price: {price_text}")
            else:
                if price <= 0:
                    errors.append("Price must be greater than zero")
                if price > MAX_PRICE:
                    errors.append(f"Price exceeds the maximum allowed ({MAX_PRICE})")

        stock_text = _value(row, "stock")
        if stock_text:
            try:
                stock = int(stock_text)
            except ValueError:
                errors.append(f"Invalid stock: {stock_text}")
            else:
                if stock < 0:
                    errors.append("Stock cannot be negative")
                if stock > MAX_STOCK:
                    errors.append(f"Stock exceeds the maximum allowed ({MAX_STOCK})")

    def _user_rules(self, row: Mapping[str, str], errors: list[str], warnings: list[str]) -> None:
        self._require(row, ("username", "password", "nombre", "apellido", "email"), errors)

        username = _value(row, "username")
        if username and not USERNAME_PATTERN.match(username):
            errors.append(
                f"Invalid username: {username}. "
                "Use 3-20 letters, digits, dots, hyphens or underscores"
            )

        self._check_email(_value(row, "email"), errors)

        # value is masked by the processor; only its length is meaningful here
        password = _value(row, "password")
        if password:
            if len(password) < MIN_PASSWORD_LENGTH:
                errors.append(f"Password must be at least {MIN_PASSWORD_LENGTH} characters")
            if len(password) > MAX_PASSWORD_LENGTH:
                errors.append(f"Password is too long (max {MAX_PASSWORD_LENGTH} characters)")

        roles = _value(row, "roles")
        if roles:
            for role in roles.split(ROLE_SEPARATOR):
                role = role.strip().upper()
                if role and role not in ALLOWED_ROLES:
                    warnings.append(f"Unknown role: {role}")

    # ─── Shared checks ─────────────────────────────────

    @staticmethod
    def _require(row: Mapping[str, str], fields: tuple[str, ...], errors: list[str]) -> None:
        for field_name in fields:
            if not _value(row, field_name):
                errors.append(f"Missing required field: {field_name}")

    @staticmethod
    def _check_email(email: str, errors: list[str]) -> None:
        if email and not EMAIL_PATTERN.match(email):
            errors.append(f"Invalid email: {email}")


def _value(row: Mapping[str, str], field_name: str) -> str:
    value = row.get(field_name)
    return str(value).strip() if value is not None else ""


def _parse_decimal(text: str) -> Decimal | None:
    try:
        value = Decimal(text)
    except InvalidOperation:
        return None
    return value if value.is_finite() else None
