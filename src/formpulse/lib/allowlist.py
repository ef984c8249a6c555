# SPDX-FileCopyrightText: 2025 Hidayat Trimarsanto <trimarsanto@gmail.com>
# SPDX-License-Identifier: MPL-2.0

from __future__ import annotations

__copyright__ = "(C) 2025 Hidayat Trimarsanto <trimarsanto@gmail.com>"
__author__ = "trimarsanto@gmail.com"
__license__ = "MPL-2.0"

# The allow-list is the only place where raw request parameters are turned
# into field values. Anything not listed here can be set by code only.

from types import MappingProxyType
from typing import Any, Iterable, Mapping

from ..config.app import logger
from .exceptions import CoercionError, FormDefinitionError
from .fields import Field, FieldDescriptor


class AllowList:
    """
    Mapping of field name to whether the field may be assigned from
    parameters. Built once per form type and never changed afterwards.
    """

    def __init__(
        self, descriptors: Iterable[FieldDescriptor], permitted: Iterable[str]
    ) -> None:
        names = [d.name for d in descriptors]
        permitted = tuple(permitted)

        unknown = [name for name in permitted if name not in names]
        if unknown:
            raise FormDefinitionError(
                f"Cannot permit undeclared field(s): {', '.join(unknown)}"
            )

        self._entries: Mapping[str, bool] = MappingProxyType(
            {name: name in permitted for name in names}
        )

    def __contains__(self, name: object) -> bool:
        return bool(self._entries.get(name, False))

    def __iter__(self):
        return (name for name, allowed in self._entries.items() if allowed)

    def __len__(self) -> int:
        return sum(1 for allowed in self._entries.values() if allowed)

    def __repr__(self) -> str:
        return f"<AllowList {list(self)!r}>"

    def is_permitted(self, name: str) -> bool:
        return name in self

    @property
    def entries(self) -> Mapping[str, bool]:
        return self._entries

    def assign(self, fields: Mapping[str, Field], params: Mapping[str, Any]) -> None:
        """
        Populate permitted fields from params

        Unknown keys and keys of fields that are not permitted are ignored
        without error. A value that cannot be coerced leaves the field
        absent and records the message on that field only.

        :param fields: the fields of one form instance, by name
        :param params: raw parameters keyed by param key name
        """
        for name, field in fields.items():
            if name not in self:
                if field.param_key_name in params:
                    logger.debug("ignoring parameter for unpermitted field %s", name)
                continue
            if field.param_key_name not in params:
                continue

            raw = params[field.param_key_name]
            try:
                value = field.descriptor.coerce(raw)
            except CoercionError as e:
                logger.debug("field %s could not be coerced: %s", name, e.message)
                field.assign_param(raw, None)
                field.add_error(f"This field {e.message}.", rule="coercion")
                continue

            field.assign_param(raw, value)
            logger.debug("assigned field %s from parameters", name)


# EOF
