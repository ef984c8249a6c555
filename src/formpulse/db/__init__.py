# SPDX-FileCopyrightText: 2025 Hidayat Trimarsanto <trimarsanto@gmail.com>
# SPDX-License-Identifier: MPL-2.0

from __future__ import annotations

__copyright__ = "(C) 2025 Hidayat Trimarsanto <trimarsanto@gmail.com>"
__author__ = "trimarsanto@gmail.com"
__license__ = "MPL-2.0"


from typing import Any


__store_class__: type[Any] | None = None


def set_store_class(store_class: type[Any]) -> None:
    """Set the global record store class for the application.

    Args:
        store_class: The store class to set, called as store_class(session, model_type).
    """
    global __store_class__
    __store_class__ = store_class


def get_store_class() -> type[Any]:
    if __store_class__ is None:
        from .store import SQLAlchemyRecordStore

        return SQLAlchemyRecordStore
    return __store_class__


def store_factory(session: Any, model_type: type[Any], **kwargs: Any) -> Any:
    """Create an instance of the global store class for one model type.

    Args:
        session: The database session to use.
        model_type: The mapped class the store reads and writes.

    Returns:
        An instance of the store class.
    """
    return get_store_class()(session, model_type, **kwargs)


# EOF
