# SPDX-FileCopyrightText: 2025 Hidayat Trimarsanto <trimarsanto@gmail.com>
# SPDX-License-Identifier: MPL-2.0

from __future__ import annotations

__copyright__ = "(C) 2025 Hidayat Trimarsanto <trimarsanto@gmail.com>"
__author__ = "trimarsanto@gmail.com"
__license__ = "MPL-2.0"

import re
from dataclasses import dataclass, field
from typing import TYPE_CHECKING, Any, Callable, Iterable

from ..config.app import settings
from .fields import is_blank

if TYPE_CHECKING:
    from .fields import Field


REQUIRED = "required"

EMAIL_REGEX = re.compile(r"^[a-zA-Z0-9_.+-]+@[a-zA-Z0-9-]+\.[a-zA-Z0-9-.]+$")


@dataclass(frozen=True)
class Rule:
    """
    Base class of a validation rule.

    A rule looks at the current value of one field (and, if needed, at the
    other fields of the form) and returns an error message, or None when
    the value passes.
    """

    kind: str = "custom"
    message: str | None = None

    # rules other than presence checks leave blank values alone
    skip_blank: bool = True

    def __call__(self, field: Field, fields: dict[str, Field]) -> str | None:
        if self.skip_blank and is_blank(field.value):
            return None
        return self.check(field.value, fields)

    def check(self, value: Any, fields: dict[str, Field]) -> str | None:
        raise NotImplementedError("check method must be implemented in subclass")


@dataclass(frozen=True)
class Required(Rule):

    kind: str = REQUIRED
    skip_blank: bool = False

    def check(self, value: Any, fields: dict[str, Field]) -> str | None:
        if is_blank(value):
            return self.message or "This field is required."
        return None


@dataclass(frozen=True)
class ConfirmationOf(Rule):

    other: str = ""
    kind: str = "confirmation"
    skip_blank: bool = False

    def check(self, value: Any, fields: dict[str, Field]) -> str | None:
        try:
            other = fields[self.other]
        except KeyError:
            raise ValueError(f"Unknown field to confirm: {self.other}") from None
        if value != other.value:
            return self.message or f"This field must match {other.descriptor.display_label}."
        return None


@dataclass(frozen=True)
class AcceptanceOf(Rule):

    kind: str = "acceptance"
    skip_blank: bool = False

    def check(self, value: Any, fields: dict[str, Field]) -> str | None:
        if value is True:
            return None
        if isinstance(value, str) and value.strip().lower() in settings.acceptance_tokens:
            return None
        return self.message or "This field must be accepted."


@dataclass(frozen=True)
class SizeOf(Rule):

    min_length: int | None = None
    max_length: int | None = None
    kind: str = "size"

    def check(self, value: Any, fields: dict[str, Field]) -> str | None:
        length = len(value) if hasattr(value, "__len__") else len(str(value))
        if self.min_length is not None and length < self.min_length:
            return (
                self.message
                or f"This field must be at least {self.min_length} characters long."
            )
        if self.max_length is not None and length > self.max_length:
            return (
                self.message
                or f"This field must be at most {self.max_length} characters long."
            )
        return None


@dataclass(frozen=True)
class Numeric(Rule):

    min_value: Any = None
    max_value: Any = None
    kind: str = "numeric"

    def check(self, value: Any, fields: dict[str, Field]) -> str | None:
        if self.min_value is not None and value < self.min_value:
            return self.message or f"This field must be at least {self.min_value}."
        if self.max_value is not None and value > self.max_value:
            return self.message or f"This field must be at most {self.max_value}."
        return None


@dataclass(frozen=True)
class InclusionOf(Rule):

    options: tuple[Any, ...] = ()
    kind: str = "inclusion"

    def check(self, value: Any, fields: dict[str, Field]) -> str | None:
        if value not in self.options:
            return self.message or "This field is not one of the allowed options."
        return None


@dataclass(frozen=True)
class FormatOf(Rule):

    pattern: re.Pattern | None = None
    kind: str = "format"

    def check(self, value: Any, fields: dict[str, Field]) -> str | None:
        if self.pattern is None:
            raise ValueError("FormatOf rule requires a pattern")
        if not self.pattern.match(str(value)):
            return self.message or "This field has an invalid format."
        return None


@dataclass(frozen=True)
class Predicate(Rule):
    """
    Wrap a plain callable as a rule.

    The callable receives the field value and may return False (fails with
    message), a string (fails with that string as the message), or
    anything else for success. It may also raise ValidationError.
    """

    func: Callable[[Any], Any] | None = field(default=None, compare=False)

    def check(self, value: Any, fields: dict[str, Field]) -> str | None:
        result = self.func(value)
        if result is False:
            return self.message or "This field is invalid."
        if isinstance(result, str):
            return result
        return None


def as_rule(
    rule: Rule | Callable[[Any], Any],
    message: str | None = None,
    skip_blank: bool = True,
) -> Rule:
    if isinstance(rule, Rule):
        return rule
    if callable(rule):
        return Predicate(
            func=rule,
            message=message,
            skip_blank=skip_blank,
            kind=getattr(rule, "__name__", "custom"),
        )
    raise TypeError(f"Not a validation rule: {rule!r}")


# helpers mirroring the field options


def Alphanum(max_length: int | None = None) -> list[Rule]:
    """Helper function to create Alphanumeric rules."""
    rules: list[Rule] = [
        FormatOf(
            kind="alphanum",
            pattern=re.compile(r"^[^\W_]+$"),
            message="This field must be alphanumeric.",
        )
    ]
    if max_length is not None:
        rules.append(SizeOf(max_length=max_length))
    return rules


def AlphanumPlus(max_length: int | None = None) -> list[Rule]:
    """Helper function to create AlphanumPlus rules."""
    rules: list[Rule] = [
        FormatOf(
            kind="alphanumplus",
            pattern=re.compile(r"^[\w+\-.]+$"),
            message="This field must be alphanumeric or contain '+', '-', '.', or '_'.",
        )
    ]
    if max_length is not None:
        rules.append(SizeOf(max_length=max_length))
    return rules


def Email(max_length: int | None = 64) -> list[Rule]:
    """Helper function to create Email rules."""
    rules: list[Rule] = [
        FormatOf(
            kind="email",
            pattern=EMAIL_REGEX,
            message="This field must be a valid email address.",
        )
    ]
    if max_length is not None:
        rules.append(SizeOf(max_length=max_length))
    return rules


def field_rules(
    max_length: int | None = None,
    min_length: int | None = None,
    min_value: Any = None,
    max_value: Any = None,
    options: Iterable[Any] | None = None,
) -> list[Rule]:
    """Translate the usual field options into rules."""
    rules: list[Rule] = []
    if min_length is not None or max_length is not None:
        rules.append(SizeOf(min_length=min_length, max_length=max_length))
    if min_value is not None or max_value is not None:
        rules.append(Numeric(min_value=min_value, max_value=max_value))
    if options is not None:
        rules.append(InclusionOf(options=tuple(options)))
    return rules


# EOF
