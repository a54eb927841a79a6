"""
Runtime settings.

Read from the environment, with a ``.env`` file in the working directory
loaded first when present.
"""

import os
from dataclasses import dataclass

from dotenv import find_dotenv, load_dotenv

from desk_mover.locator import DEFAULT_MAX_ATTEMPTS, DEFAULT_RETRY_DELAY
from desk_mover.motion import SETTLE_DELAY


def _env_number(name: str, default, cast, minimum=None):
    value = os.getenv(name)
    if value is None or value.strip() == "":
        return default
    try:
        number = cast(value)
    except ValueError as e:
        raise ValueError(f"{name} must be a number, got {value!r}") from e
    if minimum is not None and number < minimum:
        raise ValueError(f"{name} must be at least {minimum}, got {value!r}")
    return number


def load_env_file() -> None:
    """Load .env from the working directory without overriding the environment."""
    load_dotenv(find_dotenv(usecwd=True))


@dataclass
class DeskSettings:
    """Settings for one desk run."""

    address: str | None = None
    adapter: str | None = None
    scan_attempts: int = DEFAULT_MAX_ATTEMPTS
    scan_delay: float = DEFAULT_RETRY_DELAY
    settle_delay: float = SETTLE_DELAY
    list_timeout: float = 2.0
    max_pulses: int | None = None

    @classmethod
    def from_env(cls, dotenv: bool = True) -> "DeskSettings":
        """Build settings from DESK_* environment variables."""
        if dotenv:
            load_env_file()

        return cls(
            address=os.getenv("DESK_ADDRESS") or None,
            adapter=os.getenv("DESK_ADAPTER") or None,
            scan_attempts=_env_number("DESK_SCAN_ATTEMPTS", DEFAULT_MAX_ATTEMPTS, int, minimum=1),
            scan_delay=_env_number("DESK_SCAN_DELAY", DEFAULT_RETRY_DELAY, float),
            settle_delay=_env_number("DESK_SETTLE_DELAY", SETTLE_DELAY, float),
            list_timeout=_env_number("DESK_LIST_TIMEOUT", 2.0, float),
            max_pulses=_env_number("DESK_MAX_PULSES", None, int, minimum=1),
        )
