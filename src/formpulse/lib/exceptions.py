# SPDX-FileCopyrightText: 2025 Hidayat Trimarsanto <trimarsanto@gmail.com>
# SPDX-License-Identifier: MPL-2.0

from __future__ import annotations

__copyright__ = "(C) 2025 Hidayat Trimarsanto <trimarsanto@gmail.com>"
__author__ = "trimarsanto@gmail.com"
__license__ = "MPL-2.0"


class FormpulseError(Exception):
    """Base class for errors raised by formpulse."""


class CoercionError(FormpulseError, ValueError):

    def __init__(self, message: str, value_type: type | None = None):
        """
        Raised by a coercer when a raw parameter cannot be parsed

        :param message: message to be shown on the field
        :param value_type: the declared type of the field
        """
        super().__init__(message)
        self.message = message
        self.value_type = value_type


class ValidationError(FormpulseError, ValueError):

    def __init__(self, message: str, field_name: str | None = None):
        """
        A rule may raise this instead of returning a message

        :param message: message to be shown on the field
        :param field_name: name of the offending field, if known
        """
        super().__init__(message)
        self.message = message
        self.field_name = field_name


class StoreConstraintFailure(FormpulseError):

    def __init__(self, message: str, field_hint: str | None = None):
        """
        A record store rejected the data for a reason tied to one column

        :param message: message to be shown on the field
        :param field_hint: the field (column) name the failure belongs to
        """
        super().__init__(message)
        self.message = message
        self.field_hint = field_hint


class FatalStoreFailure(FormpulseError):

    def __init__(self, message: str, field_hint: str | None = None):
        """
        A record store failed in a way that cannot be shown on a field

        :param message: description of the failure
        :param field_hint: the unusable hint, if the store supplied one
        """
        super().__init__(message)
        self.message = message
        self.field_hint = field_hint


class FormDefinitionError(FormpulseError, TypeError):
    """Raised at class creation when a form type is declared incorrectly."""


class MissingNeedError(FormpulseError, TypeError):

    def __init__(self, form_name: str, operation: str, missing: list[str]):
        super().__init__(
            f"{form_name}.{operation}() missing required context: {', '.join(missing)}"
        )
        self.form_name = form_name
        self.operation = operation
        self.missing = missing


class FormStateError(FormpulseError, RuntimeError):
    """Raised when a form is driven outside its lifecycle."""


# EOF
