# SPDX-FileCopyrightText: 2025 Hidayat Trimarsanto <trimarsanto@gmail.com>
# SPDX-License-Identifier: MPL-2.0

from __future__ import annotations

__copyright__ = "(C) 2025 Hidayat Trimarsanto <trimarsanto@gmail.com>"
__author__ = "trimarsanto@gmail.com"
__license__ = "MPL-2.0"


import re
from typing import Any, Mapping, Protocol

from sqlalchemy import exc as sa_exc
from sqlalchemy.orm import DeclarativeBase

from advanced_alchemy import exceptions as aa_exc
from advanced_alchemy.repository import SQLAlchemyAsyncRepository

import lazy_object_proxy as lop

from ..config.app import logger
from ..lib.exceptions import FatalStoreFailure, StoreConstraintFailure
from .models.meta import FPAsyncSession


class RecordStore(Protocol):
    """
    What a Form needs from persistence.

    Both writes return the saved record, raise StoreConstraintFailure for
    a rejection tied to one field, and FatalStoreFailure otherwise.
    """

    async def insert(self, attributes: Mapping[str, Any]) -> Any: ...

    async def update_by_identity(
        self, identity: Any, attributes: Mapping[str, Any]
    ) -> Any: ...

    def identity_of(self, record: Any) -> Any: ...


# patterns of driver messages naming the offending column, per constraint kind
UNIQUE_PATTERNS = (
    re.compile(r"UNIQUE constraint failed: (?:\w+\.)?(\w+)"),  # sqlite
    re.compile(r"Key \((\w+)\)=\(.*\) already exists"),  # postgresql
)
NOT_NULL_PATTERNS = (
    re.compile(r"NOT NULL constraint failed: (?:\w+\.)?(\w+)"),  # sqlite
    re.compile(r'null value in column "(\w+)"'),  # postgresql
)
CONSTRAINT_NAME_PATTERNS = (
    re.compile(r'constraint "(\w+)"'),  # postgresql
    re.compile(r"for key '(?:\w+\.)?(\w+)'"),  # mysql
)

UNIQUE_MESSAGE = "This value is already taken."
NOT_NULL_MESSAGE = "This field is required."
CONSTRAINT_MESSAGE = "This value was rejected by the database."


def error_details(error: BaseException) -> str:
    """Text of an exception, its driver error and its causes."""

    parts: list[str] = []
    seen: set[int] = set()
    current: BaseException | None = error
    while current is not None and id(current) not in seen:
        seen.add(id(current))
        parts.append(str(current))
        orig = getattr(current, "orig", None)
        if orig is not None:
            parts.append(str(orig))
        current = current.__cause__ or current.__context__
    return "\n".join(parts)


class SQLAlchemyRecordStore:
    """
    RecordStore for one SQLAlchemy model, backed by an advanced-alchemy
    repository. Every write runs in a SAVEPOINT so a rejected write leaves
    the surrounding transaction usable.
    """

    id_attribute: str = "id"

    def __init__(
        self,
        session: FPAsyncSession,
        model_type: type[DeclarativeBase],
        constraint_hints: Mapping[str, str] | None = None,
    ) -> None:
        self.session = session
        self.model_type = model_type

        # extra constraint name -> field name mappings
        self.constraint_hints: dict[str, str] = dict(constraint_hints or {})

        repo_class = type(
            f"{model_type.__name__}Repo",
            (SQLAlchemyAsyncRepository,),
            {"model_type": model_type},
        )
        self.repository = lop.Proxy(lambda: repo_class(session=self.session))

    def __repr__(self) -> str:
        return f"<SQLAlchemyRecordStore {self.model_type.__name__}>"

    def identity_of(self, record: Any) -> Any:
        return getattr(record, self.id_attribute)

    async def insert(self, attributes: Mapping[str, Any]) -> Any:
        logger.debug("inserting %s with %s", self.model_type.__name__, sorted(attributes))
        try:
            async with self.session.begin_nested():
                record = await self.repository.add(self.model_type(**attributes))
        except (aa_exc.IntegrityError, aa_exc.DuplicateKeyError, sa_exc.IntegrityError) as e:
            raise self.constraint_failure(e) from e
        except (aa_exc.AdvancedAlchemyError, sa_exc.SQLAlchemyError) as e:
            raise FatalStoreFailure(f"insert into {self.model_type.__name__} failed: {e}") from e
        return record

    async def update_by_identity(self, identity: Any, attributes: Mapping[str, Any]) -> Any:
        logger.debug(
            "updating %s %r with %s", self.model_type.__name__, identity, sorted(attributes)
        )
        try:
            async with self.session.begin_nested():
                record = await self.repository.get(identity)
                for key, value in attributes.items():
                    setattr(record, key, value)
                await self.session.flush()
                await self.session.refresh(record)
        except aa_exc.NotFoundError as e:
            raise FatalStoreFailure(
                f"{self.model_type.__name__} {identity!r} does not exist"
            ) from e
        except (aa_exc.IntegrityError, aa_exc.DuplicateKeyError, sa_exc.IntegrityError) as e:
            raise self.constraint_failure(e) from e
        except (aa_exc.AdvancedAlchemyError, sa_exc.SQLAlchemyError) as e:
            raise FatalStoreFailure(
                f"update of {self.model_type.__name__} {identity!r} failed: {e}"
            ) from e
        return record

    def constraint_failure(self, error: BaseException) -> StoreConstraintFailure:
        """
        Convert an integrity error into a StoreConstraintFailure, with a
        field hint when the driver message names a column or a known
        constraint
        """
        detail = error_details(error)

        for pattern in UNIQUE_PATTERNS:
            if m := pattern.search(detail):
                return StoreConstraintFailure(UNIQUE_MESSAGE, m.group(1))

        for pattern in NOT_NULL_PATTERNS:
            if m := pattern.search(detail):
                return StoreConstraintFailure(NOT_NULL_MESSAGE, m.group(1))

        for pattern in CONSTRAINT_NAME_PATTERNS:
            if m := pattern.search(detail):
                hint = self.field_for_constraint(m.group(1))
                if hint is not None:
                    message = (
                        UNIQUE_MESSAGE
                        if m.group(1).startswith("uq_")
                        else CONSTRAINT_MESSAGE
                    )
                    return StoreConstraintFailure(message, hint)

        return StoreConstraintFailure(CONSTRAINT_MESSAGE, None)

    def field_for_constraint(self, constraint_name: str) -> str | None:
        if constraint_name in self.constraint_hints:
            return self.constraint_hints[constraint_name]

        # naming convention uq_<table>_<column>
        tablename = getattr(self.model_type, "__tablename__", "")
        prefix = f"uq_{tablename}_"
        if tablename and constraint_name.startswith(prefix):
            return constraint_name.removeprefix(prefix)
        return None


# EOF
