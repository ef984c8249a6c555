# SPDX-FileCopyrightText: 2025 Hidayat Trimarsanto <trimarsanto@gmail.com>
# SPDX-License-Identifier: MPL-2.0

from __future__ import annotations

import os
from dataclasses import dataclass, field

from litestar.logging import LoggingConfig


def get_env(var_name: str, default: str) -> str:
    return os.getenv(var_name, default)


def get_bool_env(var_name: str, default: bool) -> bool:
    value = os.getenv(var_name)
    if value is None:
        return default
    return value.strip().lower() in {"1", "true", "yes", "on"}


def get_list_env(var_name: str, default: str) -> tuple[str, ...]:
    value = os.getenv(var_name, default)
    return tuple(item.strip().lower() for item in value.split(",") if item.strip())


# Define your config
logging_config = LoggingConfig(
    root={"level": get_env("FORMPULSE_LOG_LEVEL", "INFO"), "handlers": ["queue_listener"]},
)

# Use the .configure() method to get a logger factory
logger = logging_config.configure()("formpulse")


@dataclass
class FormSettings:

    strip_whitespace: bool = field(
        default_factory=lambda: get_bool_env("FORMPULSE_STRIP", True)
    )
    """Strip leading and trailing whitespace from raw parameters before coercion."""
    acceptance_tokens: tuple[str, ...] = field(
        default_factory=lambda: get_list_env("FORMPULSE_ACCEPT_TOKENS", "1,true,yes,on")
    )
    """Raw tokens (lowercase) treated as an affirmative answer."""
    false_tokens: tuple[str, ...] = field(
        default_factory=lambda: get_list_env("FORMPULSE_FALSE_TOKENS", "0,false,no,off")
    )
    """Raw tokens (lowercase) treated as a negative answer."""


settings = FormSettings()

# EOF
