"""
Settings for connecting to and driving the desk.

Values come from the environment, with a `.env` file in the working
directory loaded first.
"""

import os
from dataclasses import dataclass
from typing import Optional

from dotenv import load_dotenv

from desk_controller.discovery import (
    DEFAULT_ATTEMPTS,
    DEFAULT_LOOP_INTERVAL,
    DEFAULT_NAME,
    DEFAULT_POLL_INTERVAL,
    AddressMatcher,
    DeviceAddress,
    Matcher,
    NameMatcher,
)

_TRUE = ("1", "true", "yes", "on")
_FALSE = ("0", "false", "no", "off")


def _get_int(env: dict, key: str, default: int) -> int:
    raw = env.get(key)
    if raw is None or raw == "":
        return default
    try:
        return int(raw)
    except ValueError:
        raise ValueError(f"{key} must be an integer, got {raw!r}") from None


def _get_float(env: dict, key: str, default: Optional[float]) -> Optional[float]:
    raw = env.get(key)
    if raw is None or raw == "":
        return default
    try:
        return float(raw)
    except ValueError:
        raise ValueError(f"{key} must be a number, got {raw!r}") from None


def _get_bool(env: dict, key: str, default: bool) -> bool:
    raw = env.get(key)
    if raw is None or raw == "":
        return default
    if raw.lower() in _TRUE:
        return True
    if raw.lower() in _FALSE:
        return False
    raise ValueError(f"{key} must be true or false, got {raw!r}")


@dataclass
class DeskSettings:
    """How to find the desk and how to drive it."""

    name: str = DEFAULT_NAME
    address: Optional[str] = None
    adapter: Optional[str] = None
    discovery_attempts: int = DEFAULT_ATTEMPTS
    discovery_interval: float = DEFAULT_POLL_INTERVAL
    poll_interval: float = DEFAULT_LOOP_INTERVAL
    move_timeout: Optional[float] = None
    subscribe: bool = True

    @classmethod
    def from_env(cls, env: Optional[dict] = None) -> "DeskSettings":
        """
        Build settings from environment variables.

        Args:
            env: Mapping to read instead of os.environ (skips .env loading)

        Raises:
            ValueError: If a variable holds an unusable value
        """
        if env is None:
            load_dotenv()
            env = dict(os.environ)

        return cls(
            name=env.get("DESK_NAME") or DEFAULT_NAME,
            address=env.get("DESK_ADDRESS") or None,
            adapter=env.get("DESK_ADAPTER") or None,
            discovery_attempts=_get_int(env, "DESK_DISCOVERY_ATTEMPTS", DEFAULT_ATTEMPTS),
            discovery_interval=_get_float(env, "DESK_DISCOVERY_INTERVAL", DEFAULT_POLL_INTERVAL),
            poll_interval=_get_float(env, "DESK_POLL_INTERVAL", DEFAULT_LOOP_INTERVAL),
            move_timeout=_get_float(env, "DESK_MOVE_TIMEOUT", None),
            subscribe=_get_bool(env, "DESK_SUBSCRIBE", True),
        )

    def matcher(self) -> Matcher:
        """
        Matcher selecting the configured desk. An address wins over a name.

        Raises:
            MacAddrParseFailed: If the configured address is malformed
        """
        if self.address:
            return AddressMatcher(DeviceAddress.parse(self.address))
        return NameMatcher(self.name)
