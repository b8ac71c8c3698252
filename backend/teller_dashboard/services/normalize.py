"""Validation and rounding for user-entered manual financial fields.

Every write path runs its raw input through one of these helpers before
touching storage. Each helper returns a canonical value or raises
``ValidationError`` with a message suitable for showing to the user.
``None`` always passes through unchanged so callers can clear a field.
"""

from __future__ import annotations

from dataclasses import dataclass
from decimal import ROUND_HALF_UP, Decimal, InvalidOperation, localcontext
from typing import Any

MONEY_QUANT = Decimal("0.01")
MAX_SAFE_INTEGER = 2**53 - 1
MAX_STRING_LENGTH = 120
OUT_OF_RANGE = "value is out of range for storage"


class ValidationError(ValueError):
    """Raised when a manual field value cannot be normalized."""


class UnknownFieldError(ValidationError):
    """Raised when a write names a field the store does not know."""

    def __init__(self, field: str):
        super().__init__("unknown_field")
        self.field = field


class UnknownSlugError(ValidationError):
    """Raised when a write names a liability slug outside the closed set."""

    def __init__(self, slug: str):
        super().__init__("unknown_slug")
        self.slug = slug


class InvalidAmountError(ValidationError, TypeError):
    """Raised when an amount is not a finite number at all."""


@dataclass(frozen=True)
class PercentPolicy:
    upper_bound: Decimal
    inclusive: bool
    places: int

    @property
    def quant(self) -> Decimal:
        return Decimal(1).scaleb(-self.places)

    def describe(self) -> str:
        if self.inclusive:
            return f"must be a percentage between 0 and {self.upper_bound}"
        return f"must be a percentage 0-<{self.upper_bound}"


# The two stores historically disagree on whether 100% is a valid rate.
# Both bounds are kept and named here so the difference lives in one place.
FIELD_PERCENT = PercentPolicy(upper_bound=Decimal("100"), inclusive=True, places=2)
LIABILITY_PERCENT = PercentPolicy(upper_bound=Decimal("100"), inclusive=False, places=4)


def to_decimal(value: Any) -> Decimal:
    """Coerce a JSON-ish scalar to a finite Decimal or raise InvalidAmountError."""
    if isinstance(value, bool):
        raise InvalidAmountError("must be a number")

    if isinstance(value, Decimal):
        number = value
    elif isinstance(value, (int, float)):
        number = Decimal(str(value))
    elif isinstance(value, str):
        text = value.strip()
        if not text:
            raise InvalidAmountError("must be a number")
        try:
            number = Decimal(text)
        except InvalidOperation as exc:
            raise InvalidAmountError("must be a number") from exc
    else:
        raise InvalidAmountError("must be a number")

    if not number.is_finite():
        raise InvalidAmountError("must be a finite number")

    return number


def quantize(value: Decimal, quant: Decimal) -> Decimal:
    """Round half-up to the exponent of ``quant``, whatever the magnitude of ``value``."""
    with localcontext() as ctx:
        ctx.prec = max(ctx.prec, value.adjusted() - quant.as_tuple().exponent + 2)
        return value.quantize(quant, rounding=ROUND_HALF_UP)


def quantize_money(value: Decimal) -> Decimal:
    return quantize(value, MONEY_QUANT)


def norm_currency(value: Any) -> Decimal | None:
    if value is None:
        return None

    try:
        number = to_decimal(value)
    except InvalidAmountError as exc:
        raise ValidationError("must be a non-negative number") from exc

    if number < 0:
        raise ValidationError("must be a non-negative number")

    return quantize_money(number)


def norm_percent(value: Any, policy: PercentPolicy = FIELD_PERCENT) -> Decimal | None:
    if value is None:
        return None

    try:
        number = to_decimal(value)
    except InvalidAmountError as exc:
        raise ValidationError(policy.describe()) from exc

    too_big = number > policy.upper_bound if policy.inclusive else number >= policy.upper_bound
    if number < 0 or too_big:
        raise ValidationError(policy.describe())

    rounded = quantize(number, policy.quant)
    # An exclusive bound also rejects values that round up onto it.
    if not policy.inclusive and rounded >= policy.upper_bound:
        raise ValidationError(policy.describe())

    return rounded


def norm_int(value: Any, *, min_value: int = 1, max_value: int = MAX_SAFE_INTEGER) -> int | None:
    if value is None:
        return None

    message = f"must be an integer between {min_value} and {max_value}"
    try:
        number = to_decimal(value)
    except InvalidAmountError as exc:
        raise ValidationError(message) from exc

    if number != number.to_integral_value() or number < min_value or number > max_value:
        raise ValidationError(message)

    return int(number)


def norm_string(value: Any, *, max_length: int = MAX_STRING_LENGTH) -> str | None:
    if value is None:
        return None

    text = str(value).strip()
    if not text:
        raise ValidationError("must be a non-empty string")

    if len(text) > max_length:
        raise ValidationError(f"must be <= {max_length} characters")

    return text


def normalize_rent_roll(value: Any) -> Decimal | None:
    """Rent roll accepts null or an empty string as an explicit clear."""
    if value is None or value == "":
        return None

    try:
        number = to_decimal(value)
    except InvalidAmountError as exc:
        raise InvalidAmountError("rent_roll must be a number or null") from exc

    if number < 0:
        raise ValidationError("rent_roll must be non-negative")

    return quantize_money(number)
