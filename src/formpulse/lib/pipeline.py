# SPDX-FileCopyrightText: 2025 Hidayat Trimarsanto <trimarsanto@gmail.com>
# SPDX-License-Identifier: MPL-2.0

from __future__ import annotations

__copyright__ = "(C) 2025 Hidayat Trimarsanto <trimarsanto@gmail.com>"
__author__ = "trimarsanto@gmail.com"
__license__ = "MPL-2.0"

from contextlib import contextmanager
from typing import Any, Callable, Iterator, Mapping

from ..config.app import logger
from .exceptions import FormStateError, ValidationError
from .fields import Field
from . import validators as v


class ValidationPipeline:
    """
    Runs validation rules against the fields of one form instance.

    Rules registered with validate() are evaluated immediately and every
    failure is appended to the field's errors; nothing short-circuits,
    neither within a field nor across fields.
    """

    def __init__(self, fields: Mapping[str, Field]) -> None:
        self.fields = fields
        self.accepting = False
        self.done = False

        # (field name, rule kind) of every evaluated rule, in order
        self.evaluated: list[tuple[str, str]] = []

    @contextmanager
    def registration(self) -> Iterator[ValidationPipeline]:
        """Window in which validate() may be called (the prepare stage)."""
        self.accepting = True
        try:
            yield self
        finally:
            self.accepting = False

    def _resolve(self, field: Field | str) -> Field:
        if isinstance(field, Field):
            if self.fields.get(field.name) is not field:
                raise ValueError(f"Field {field.name} does not belong to this form")
            return field
        try:
            return self.fields[field]
        except KeyError:
            raise ValueError(f"Unknown field: {field}") from None

    def validate(
        self,
        field: Field | str,
        rule: v.Rule | Callable[[Any], Any],
        message: str | None = None,
        skip_blank: bool = True,
    ) -> bool:
        """
        Evaluate rule against the current value of field

        :param field: the bound field, or its name
        :param rule: a Rule, or a callable taking the value
        :param message: message for a callable that returns False
        :param skip_blank: let a callable pass on blank values
        :return: True if the rule passed
        """
        if not self.accepting:
            raise FormStateError("validators can only be registered during prepare()")
        return self._apply(
            self._resolve(field), v.as_rule(rule, message=message, skip_blank=skip_blank)
        )

    def _apply(self, field: Field, rule: v.Rule) -> bool:
        try:
            message = rule(field, self.fields)
        except ValidationError as e:
            message = e.message
        self.evaluated.append((field.name, rule.kind))
        if message:
            logger.debug("field %s failed %s rule", field.name, rule.kind)
            field.add_error(message, rule=rule.kind)
            return False
        return True

    def apply_declared(self) -> None:
        """Apply the rules declared together with each field."""
        for field in self.fields.values():
            for rule in field.descriptor.rules:
                self._apply(field, rule)

    def apply_required(self) -> None:
        """
        Require a value for every non-nullable field, persisted or virtual.

        Runs after every other rule. A field that already failed a required
        rule, or whose parameter could not be coerced, keeps its existing
        message instead of getting a second one.
        """
        required = v.Required()
        for field in self.fields.values():
            descriptor = field.descriptor
            if descriptor.nullable:
                continue
            if not field.absent:
                continue
            if v.REQUIRED in field.failed_rules or "coercion" in field.failed_rules:
                continue
            self._apply(field, required)

    def finish(self) -> bool:
        self.apply_declared()
        self.apply_required()
        self.done = True
        return self.errors

    @property
    def errors(self) -> bool:
        return any(field.errors for field in self.fields.values())

    def error_map(self) -> dict[str, list[str]]:
        return {
            name: list(field.errors)
            for name, field in self.fields.items()
            if field.errors
        }


# EOF
