# SPDX-FileCopyrightText: 2025 Hidayat Trimarsanto <trimarsanto@gmail.com>
# SPDX-License-Identifier: MPL-2.0

from __future__ import annotations

__copyright__ = "(C) 2025 Hidayat Trimarsanto <trimarsanto@gmail.com>"
__author__ = "trimarsanto@gmail.com"
__license__ = "MPL-2.0"

import math
import uuid
from dataclasses import dataclass, field
from datetime import date, datetime
from decimal import Decimal, InvalidOperation
from typing import Any, Callable, Generic, TypeVar

from ..config.app import settings
from .exceptions import CoercionError

T = TypeVar("T")


# coercers, one per supported value type; each receives a stripped, non-empty
# string and either returns the typed value or raises CoercionError


def _to_str(raw: str) -> str:
    return raw


def _to_int(raw: str) -> int:
    try:
        return int(raw)
    except ValueError:
        raise CoercionError("must be a whole number", int) from None


def _to_float(raw: str) -> float:
    try:
        value = float(raw)
    except ValueError:
        raise CoercionError("must be a number", float) from None
    if not math.isfinite(value):
        raise CoercionError("must be a number", float)
    return value


def _to_decimal(raw: str) -> Decimal:
    try:
        value = Decimal(raw)
    except InvalidOperation:
        raise CoercionError("must be a number", Decimal) from None
    if not value.is_finite():
        raise CoercionError("must be a number", Decimal)
    return value


def _to_bool(raw: str) -> bool:
    token = raw.lower()
    if token in settings.acceptance_tokens:
        return True
    if token in settings.false_tokens:
        return False
    raise CoercionError("must be true or false", bool)


def _to_date(raw: str) -> date:
    try:
        return date.fromisoformat(raw)
    except ValueError:
        raise CoercionError("must be a valid date (YYYY-MM-DD)", date) from None


def _to_datetime(raw: str) -> datetime:
    try:
        return datetime.fromisoformat(raw)
    except ValueError:
        raise CoercionError("must be a valid date and time", datetime) from None


def _to_uuid(raw: str) -> uuid.UUID:
    try:
        return uuid.UUID(raw)
    except ValueError:
        raise CoercionError("must be a valid UUID", uuid.UUID) from None


COERCERS: dict[type, Callable[[str], Any]] = {
    str: _to_str,
    int: _to_int,
    float: _to_float,
    Decimal: _to_decimal,
    bool: _to_bool,
    date: _to_date,
    datetime: _to_datetime,
    uuid.UUID: _to_uuid,
}


def coerce(value_type: type, raw: Any, strip: bool | None = None) -> Any:
    """
    Convert a raw parameter into value_type

    Blank input (None, or an empty string after stripping) is absent and
    returns None for every type.

    :param value_type: the declared type of the field
    :param raw: the raw parameter, usually a string
    :param strip: strip whitespace first, defaults to settings.strip_whitespace
    :raises CoercionError: if the raw value cannot be parsed
    """
    if raw is None:
        return None
    if type(raw) is value_type and not isinstance(raw, str):
        return raw
    if not isinstance(raw, str):
        raw = str(raw)
    if strip is None:
        strip = settings.strip_whitespace
    if strip:
        raw = raw.strip()
    if raw == "":
        return None
    try:
        coercer = COERCERS[value_type]
    except KeyError:
        raise CoercionError(
            f"cannot be read as {value_type.__name__}", value_type
        ) from None
    return coercer(raw)


def is_blank(value: Any) -> bool:
    if value is None:
        return True
    return isinstance(value, str) and value.strip() == ""


@dataclass(frozen=True)
class FieldDescriptor:
    """Static description of one attribute of a form type."""

    name: str
    value_type: type = str
    nullable: bool = True
    persisted: bool = True
    label: str | None = None
    default: Any = None

    # rules declared together with the field, applied before prepare() validators
    rules: tuple[Any, ...] = field(default=(), compare=False)

    @property
    def virtual(self) -> bool:
        return not self.persisted

    @property
    def display_label(self) -> str:
        return self.label or self.name.replace("_", " ").capitalize()

    def coerce(self, raw: Any) -> Any:
        return coerce(self.value_type, raw)


class Field(Generic[T]):
    """
    Holds the value, raw input and error messages of one attribute for a
    single form submission
    """

    def __init__(self, descriptor: FieldDescriptor, param_key_name: str) -> None:
        self.descriptor = descriptor
        self.param_key_name = param_key_name
        self.param_raw: str | None = None
        self.errors: list[str] = []
        self.failed_rules: list[str] = []

        # True only when the allow-list consumed a parameter for this field
        self.was_assigned: bool = False
        self.explicitly_set: bool = False

        self._value: T | None = None
        self.original_value: T | None = None

    def __repr__(self) -> str:
        return (
            f"<Field {self.name}={self._value!r} errors={self.errors!r}>"
        )

    @property
    def name(self) -> str:
        return self.descriptor.name

    @property
    def value(self) -> T | None:
        return self._value

    @value.setter
    def value(self, value: T | None) -> None:
        # programmatic assignment, never from raw params
        self._value = value
        self.explicitly_set = True

    def seed(self, value: T | None) -> None:
        """Set the starting value (declared default or existing record)."""
        self._value = value
        self.original_value = value

    def assign_param(self, raw: Any, value: T | None) -> None:
        self.param_raw = raw
        self._value = value
        self.was_assigned = True

    @property
    def changed(self) -> bool:
        return self._value != self.original_value

    @property
    def absent(self) -> bool:
        return is_blank(self._value)

    def add_error(self, message: str, rule: str | None = None) -> None:
        self.errors.append(message)
        if rule is not None:
            self.failed_rules.append(rule)

    @property
    def valid(self) -> bool:
        return not self.errors

    def view(self) -> FieldView:
        return FieldView(self)


class FieldView:
    """
    Read-only access to a Field, handed to the markup layer
    """

    __slots__ = ("_field",)

    def __init__(self, field: Field) -> None:
        object.__setattr__(self, "_field", field)

    def __setattr__(self, name: str, value: Any) -> None:
        raise AttributeError("FieldView is read-only")

    def __repr__(self) -> str:
        return f"<FieldView {self._field.param_key_name}>"

    @property
    def name(self) -> str:
        return self._field.name

    @property
    def label(self) -> str:
        return self._field.descriptor.display_label

    def value(self) -> Any:
        return self._field.value

    def raw(self) -> str | None:
        return self._field.param_raw

    def has_errors(self) -> bool:
        return bool(self._field.errors)

    def error_messages(self) -> tuple[str, ...]:
        return tuple(self._field.errors)

    def param_key_name(self) -> str:
        return self._field.param_key_name


# EOF
