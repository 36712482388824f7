"""Runner configuration from flags and environment."""

import logging
import math
import os
import re
from dataclasses import dataclass
from typing import Optional

from .status import IndeterminatePolicy
from .watcher import DEFAULT_WATCH_WINDOW

logger = logging.getLogger(__name__)

DEFAULT_RUNNER_NAME = "runner"
DEFAULT_CLEANUP_TIMEOUT = 5 * 60.0

# Environment variables
ENV_SCALE_SET_NAME = "ACTIONS_RUNNER_SCALE_SET_NAME"
ENV_RUNNER_NAME = "RUNNER_NAME"
ENV_JIT_CONFIG = "ACTIONS_RUNNER_INPUT_JITCONFIG"
ENV_NAMESPACE = "KAR_NAMESPACE"
ENV_CLEANUP_TIMEOUT = "KAR_CLEANUP_TIMEOUT"
ENV_TIMEOUT = "KAR_TIMEOUT"
ENV_WATCH_WINDOW = "KAR_WATCH_WINDOW"
ENV_INDETERMINATE_PHASE = "KAR_INDETERMINATE_PHASE"
ENV_LOG_LEVEL = "KAR_LOG_LEVEL"

_UNIT_SECONDS = {
    "ns": 1e-9,
    "us": 1e-6,
    "µs": 1e-6,
    "ms": 1e-3,
    "s": 1.0,
    "m": 60.0,
    "h": 3600.0,
}
_DURATION_PART = re.compile(r"(\d+(?:\.\d*)?|\.\d+)(ns|us|µs|ms|s|m|h)")


def parse_duration(value):
    """
    Parse a duration such as "10m", "30s", "1h30m" or "0s" into seconds.

    A bare number is taken as seconds. Raises ValueError otherwise.
    """
    if value is None:
        raise ValueError("empty duration")
    text = value.strip()
    if not text:
        raise ValueError("empty duration")

    try:
        seconds = float(text)
    except ValueError:
        pass
    else:
        if seconds < 0 or not math.isfinite(seconds):
            raise ValueError(f"invalid duration: {value!r}")
        return seconds

    pos = 0
    total = 0.0
    for match in _DURATION_PART.finditer(text):
        if match.start() != pos:
            break
        total += float(match.group(1)) * _UNIT_SECONDS[match.group(2)]
        pos = match.end()
    if pos != len(text) or pos == 0:
        raise ValueError(f"invalid duration: {value!r}")
    return total


def duration_from_env(name, default, environ=None):
    """Duration from an env var, logging and falling back on bad values."""
    environ = os.environ if environ is None else environ
    raw = environ.get(name, "")
    if not raw:
        return default
    try:
        return parse_duration(raw)
    except ValueError:
        logger.warning(f"Invalid {name} value: {raw!r}, using default {default}")
        return default


def cleanup_timeout_from_env(environ=None):
    return duration_from_env(ENV_CLEANUP_TIMEOUT, DEFAULT_CLEANUP_TIMEOUT, environ)


@dataclass
class RunnerConfig:
    """Settings for one runner invocation."""

    scale_set_name: str
    runner_name: str
    jit_config: str
    namespace: Optional[str] = None
    cleanup_timeout: float = DEFAULT_CLEANUP_TIMEOUT
    timeout: Optional[float] = None
    watch_window: float = DEFAULT_WATCH_WINDOW
    indeterminate_policy: IndeterminatePolicy = IndeterminatePolicy.SUCCESS
    log_level: str = "INFO"

    def validate(self):
        if not self.scale_set_name:
            raise ValueError(f"scale set name is required (--scale-set-name or {ENV_SCALE_SET_NAME})")
        if self.watch_window <= 0:
            raise ValueError("watch window must be positive")
        if self.timeout is not None and self.timeout <= 0:
            raise ValueError("timeout must be positive")
        return self

    def __repr__(self):
        # Never print the JIT config
        return (
            f"RunnerConfig(scale_set_name={self.scale_set_name!r}, runner_name={self.runner_name!r}, "
            f"namespace={self.namespace!r}, cleanup_timeout={self.cleanup_timeout}, timeout={self.timeout}, "
            f"watch_window={self.watch_window}, indeterminate_policy={self.indeterminate_policy.value})"
        )
