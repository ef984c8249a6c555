# SPDX-FileCopyrightText: 2025 Hidayat Trimarsanto <trimarsanto@gmail.com>
# SPDX-License-Identifier: MPL-2.0

from __future__ import annotations

__copyright__ = "(C) 2025 Hidayat Trimarsanto <trimarsanto@gmail.com>"
__author__ = "trimarsanto@gmail.com"
__license__ = "MPL-2.0"

from dataclasses import dataclass
from enum import Enum
from types import MappingProxyType
from typing import Any, Iterable, Mapping

from .exceptions import FormDefinitionError, MissingNeedError


class Operation(str, Enum):
    CREATE = "create"
    UPDATE = "update"


class NeedScope(str, Enum):
    CREATE = "create"
    UPDATE = "update"
    BOTH = "both"

    def covers(self, operation: Operation) -> bool:
        return self is NeedScope.BOTH or self.value == operation.value


@dataclass(frozen=True)
class Need:
    """
    An external value a form type depends on, such as the acting user.

    A need scoped to one operation is never required for the other one,
    and reads of it during the other operation return None.
    """

    name: str
    value_type: type | None = None
    scope: NeedScope = NeedScope.BOTH
    required: bool = True

    def required_for(self, operation: Operation) -> bool:
        return self.required and self.scope.covers(operation)


class NeedsContext:
    """The context values supplied for one create or update call."""

    def __init__(self, values: Mapping[str, Any], operation: Operation) -> None:
        self._values = MappingProxyType(dict(values))
        self.operation = operation

    def __repr__(self) -> str:
        return f"<NeedsContext {self.operation.value} {sorted(self._values)!r}>"

    def __contains__(self, name: object) -> bool:
        return name in self._values

    def get(self, name: str, default: Any = None) -> Any:
        return self._values.get(name, default)

    def __getitem__(self, name: str) -> Any:
        return self._values[name]

    def names(self) -> tuple[str, ...]:
        return tuple(self._values)


class NeedsDeclaration:
    """All needs of one form type, checked once at class creation."""

    def __init__(self, needs: Iterable[Need]) -> None:
        needs = tuple(needs)
        seen: set[str] = set()
        for need in needs:
            if not isinstance(need, Need):
                raise FormDefinitionError(f"needs must contain Need instances: {need!r}")
            if need.name in seen:
                raise FormDefinitionError(f"Duplicate need: {need.name}")
            seen.add(need.name)
        self._needs: Mapping[str, Need] = MappingProxyType({n.name: n for n in needs})

    def __iter__(self):
        return iter(self._needs.values())

    def __len__(self) -> int:
        return len(self._needs)

    def __contains__(self, name: object) -> bool:
        return name in self._needs

    def bind(
        self,
        form_name: str,
        operation: Operation,
        supplied: Mapping[str, Any],
        check_required: bool = True,
    ) -> NeedsContext:
        """
        Check supplied context values and keep the ones this operation reads

        :raises TypeError: for an undeclared context name or a wrong type
        :raises MissingNeedError: if a need required for operation is absent
            (skipped with check_required=False, used when a form is only rendered)
        """
        undeclared = [name for name in supplied if name not in self._needs]
        if undeclared:
            raise TypeError(
                f"{form_name}.{operation.value}() got unexpected context: "
                f"{', '.join(undeclared)}"
            )

        missing = [] if not check_required else [
            need.name
            for need in self._needs.values()
            if need.required_for(operation) and supplied.get(need.name) is None
        ]
        if missing:
            raise MissingNeedError(form_name, operation.value, missing)

        values: dict[str, Any] = {}
        for name, value in supplied.items():
            need = self._needs[name]
            if not need.scope.covers(operation):
                # scoped to the other operation, not read
                continue
            if value is not None and need.value_type is not None:
                if not isinstance(value, need.value_type):
                    raise TypeError(
                        f"{form_name}.{operation.value}() context {name!r} must be "
                        f"{need.value_type.__name__}, got {type(value).__name__}"
                    )
            values[name] = value

        return NeedsContext(values, operation)


# EOF
