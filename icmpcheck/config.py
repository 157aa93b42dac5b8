"""Configuration model and loading for icmpcheck."""

import json
import logging
import math
import re
from dataclasses import dataclass, field
from datetime import timedelta
from typing import Any, Mapping

from icmpcheck.errors import ConfigurationError

logger = logging.getLogger(__name__)

DEFAULT_INTERVAL = timedelta(minutes=1)
DEFAULT_PING_COUNT = 3
DEFAULT_PING_TIMEOUT = timedelta(seconds=5)

# QTimer takes a signed 32-bit millisecond interval
MAX_INTERVAL = timedelta(milliseconds=2**31 - 1)

_DURATION_UNITS = {
    "ns": 1e-9,
    "us": 1e-6,
    "µs": 1e-6,
    "ms": 1e-3,
    "s": 1.0,
    "m": 60.0,
    "h": 3600.0,
}

# Longest units first so "ms" wins over "m"
_DURATION_PART = re.compile(r"(\d+(?:\.\d+)?)(ns|us|µs|ms|s|m|h)")
_DURATION_FULL = re.compile(r"(?:\d+(?:\.\d+)?(?:ns|us|µs|ms|s|m|h))+")


def parse_duration(value: Any) -> timedelta:
    """Parse a duration value into a timedelta.

    Accepts Go-style duration strings ("5s", "500ms", "1m30s"), plain
    numbers interpreted as seconds, and timedelta instances.

    Args:
        value: Duration to parse

    Returns:
        Parsed duration

    Raises:
        ConfigurationError: If the value cannot be interpreted as a duration

    Examples:
        >>> parse_duration("1m30s")
        datetime.timedelta(seconds=90)
        >>> parse_duration(2)
        datetime.timedelta(seconds=2)
    """
    if isinstance(value, timedelta):
        return value

    # bool is an int subclass, reject it explicitly
    if isinstance(value, bool):
        raise ConfigurationError(f"invalid duration: {value!r}")

    if isinstance(value, (int, float)):
        if not math.isfinite(value):
            raise ConfigurationError(f"invalid duration: {value!r}")
        return _to_timedelta(value, value)

    if not isinstance(value, str):
        raise ConfigurationError(f"invalid duration: {value!r}")

    text = value.strip()
    sign = 1
    if text.startswith("-"):
        sign = -1
        text = text[1:]

    if text == "0":
        return timedelta(0)

    if not text or not _DURATION_FULL.fullmatch(text):
        raise ConfigurationError(f"invalid duration: {value!r}")

    seconds = sum(
        float(amount) * _DURATION_UNITS[unit]
        for amount, unit in _DURATION_PART.findall(text)
    )
    return _to_timedelta(sign * seconds, value)


def _to_timedelta(seconds: float, value: Any) -> timedelta:
    try:
        return timedelta(seconds=seconds)
    except (OverflowError, ValueError) as e:
        raise ConfigurationError(f"invalid duration: {value!r}") from e


@dataclass(frozen=True)
class Target:
    """One probe destination.

    ping_count and ping_timeout are explicit optionals: None means the
    default applies, an explicit value must be positive.
    """

    address: str
    ping_count: int | None = None
    ping_timeout: timedelta | None = None

    @property
    def count(self) -> int:
        """Number of echo requests for a probe session."""
        if self.ping_count is None:
            return DEFAULT_PING_COUNT
        return self.ping_count

    @property
    def timeout(self) -> timedelta:
        """Overall probe session timeout."""
        if self.ping_timeout is None:
            return DEFAULT_PING_TIMEOUT
        return self.ping_timeout

    def validate(self, field_name: str = "target") -> None:
        """Check target invariants.

        Raises:
            ConfigurationError: If any field is out of range
        """
        if not isinstance(self.address, str) or not self.address.strip():
            raise ConfigurationError(f"{field_name}.target must be a non-empty string")

        if self.ping_count is not None:
            if isinstance(self.ping_count, bool) or not isinstance(self.ping_count, int):
                raise ConfigurationError(f"{field_name}.ping_count must be an integer")
            if self.ping_count < 1:
                raise ConfigurationError(f"{field_name}.ping_count must be positive")

        if self.ping_timeout is not None and self.ping_timeout <= timedelta(0):
            raise ConfigurationError(f"{field_name}.ping_timeout must be positive")


@dataclass(frozen=True)
class Config:
    """Immutable receiver configuration."""

    interval: timedelta = DEFAULT_INTERVAL
    targets: tuple[Target, ...] = field(default_factory=tuple)

    def validate(self) -> None:
        """Check configuration invariants.

        Raises:
            ConfigurationError: If the interval or any target is invalid
        """
        if not isinstance(self.interval, timedelta) or self.interval <= timedelta(0):
            raise ConfigurationError("interval must be positive")
        if self.interval > MAX_INTERVAL:
            raise ConfigurationError(f"interval must not exceed {MAX_INTERVAL}")

        for index, target in enumerate(self.targets):
            target.validate(f"targets[{index}]")

    @property
    def interval_ms(self) -> int:
        """Interval in whole milliseconds, at least 1."""
        return max(1, int(self.interval / timedelta(milliseconds=1)))


def _load_target(data: Any, index: int) -> Target:
    field_name = f"targets[{index}]"

    if isinstance(data, str):
        data = {"target": data}

    if not isinstance(data, Mapping):
        raise ConfigurationError(f"{field_name} must be an object")

    if "target" not in data:
        raise ConfigurationError(f"{field_name}.target is required")

    ping_timeout = data.get("ping_timeout")
    if ping_timeout is not None:
        try:
            ping_timeout = parse_duration(ping_timeout)
        except ConfigurationError as e:
            raise ConfigurationError(f"{field_name}.ping_timeout: {e}") from e

    target = Target(
        address=data["target"],
        ping_count=data.get("ping_count"),
        ping_timeout=ping_timeout,
    )
    target.validate(field_name)
    return target


def load_config(data: Mapping[str, Any]) -> Config:
    """Build and validate a Config from its external mapping form.

    Expected shape::

        {
            "interval": "1m",
            "targets": [
                {"target": "example.com", "ping_count": 3, "ping_timeout": "5s"}
            ]
        }

    Args:
        data: Parsed configuration mapping

    Returns:
        Validated Config

    Raises:
        ConfigurationError: If the mapping is malformed
    """
    if not isinstance(data, Mapping):
        raise ConfigurationError("configuration must be an object")

    interval = data.get("interval")
    if interval is None:
        interval = DEFAULT_INTERVAL
    else:
        try:
            interval = parse_duration(interval)
        except ConfigurationError as e:
            raise ConfigurationError(f"interval: {e}") from e

    raw_targets = data.get("targets") or []
    if not isinstance(raw_targets, list):
        raise ConfigurationError("targets must be a list")

    config = Config(
        interval=interval,
        targets=tuple(_load_target(t, i) for i, t in enumerate(raw_targets)),
    )
    config.validate()

    logger.debug(
        "Config loaded: interval=%s, targets=%d", config.interval, len(config.targets)
    )
    return config


def load_config_file(path: str) -> Config:
    """Load and validate a JSON configuration file.

    Raises:
        ConfigurationError: If the file cannot be read or parsed
    """
    try:
        with open(path, encoding="utf-8") as f:
            data = json.load(f)
    except OSError as e:
        raise ConfigurationError(f"cannot read config file {path}: {e}") from e
    except json.JSONDecodeError as e:
        raise ConfigurationError(f"invalid JSON in config file {path}: {e}") from e

    return load_config(data)
