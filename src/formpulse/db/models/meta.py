# SPDX-FileCopyrightText: 2025 Hidayat Trimarsanto <trimarsanto@gmail.com>
# SPDX-License-Identifier: MPL-2.0

from __future__ import annotations

__copyright__ = "(C) 2025 Hidayat Trimarsanto <trimarsanto@gmail.com>"
__author__ = "trimarsanto@gmail.com"
__license__ = "MPL-2.0"


from sqlalchemy.ext.asyncio import AsyncSession

# dbs = database sessions
# dbs are handed to record stores, one store per model type


class FPAsyncSession(AsyncSession):
    pass


# EOF
