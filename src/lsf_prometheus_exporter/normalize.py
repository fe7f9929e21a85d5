"""Normalizers for LSF field values.

Small pure functions turning the tokens LSF prints (status words, ``-``
placeholders, unit-suffixed sizes, percentages) into numbers or fixed
categories. Status and category mappings are total: unrecognized tokens map
to 0 or ``"unknown"``. Numeric parsers raise :class:`NormalizationError` for
tokens they cannot interpret so callers decide on the fallback.
"""

import math
import re

from .errors import NormalizationError

NO_LIMIT = -1.0
PLACEHOLDER = "-"

# bhosts STATUS
HOST_STATUS = {
    "ok": 1,
    "unavail": 2,
    "unreach": 3,
    "closed": 4,
    "closed_full": 4,
    "closed_cu_excl": 5,
}

# bqueues STATUS; older releases print the "_win" suffix
QUEUE_STATUS = {
    "open:active": 1,
    "open:inact": 2,
    "open:inact_win": 2,
    "closed:active": 3,
    "closed:inact": 4,
    "closed:inact_win": 4,
}

# lsload status
LOAD_STATUS = {
    "ok": 1,
    "-ok": 2,
    "busy": 3,
    "lockw": 4,
    "locku": 5,
    "unavail": 6,
}

# bjobs STAT
JOB_STATUS = {
    "pend": 1,
    "psusp": 2,
    "run": 3,
    "ususp": 4,
    "ssusp": 5,
    "done": 6,
    "exit": 7,
    "unkwn": 8,
    "wait": 9,
    "zombi": 10,
}

SERVER_TYPE = {
    "yes": "servers",
    "no": "client",
    "dyn": "dynamic",
}

# Multipliers to kibibytes
SIZE_UNITS = {
    "K": 1,
    "M": 1024,
    "G": 1024**2,
    "T": 1024**3,
    "P": 1024**4,
    "E": 1024**5,
}

_SIZE_RE = re.compile(r"^(?P<size>\d+(?:\.\d*)?|\.\d+)(?P<unit>[A-Za-z]*)$")


def _lookup(table: dict[str, int], status: str) -> int:
    return table.get(status.strip().lower(), 0)


def host_status(status: str) -> int:
    """Map a ``bhosts`` status word to its code, 0 if unknown."""
    return _lookup(HOST_STATUS, status)


def queue_status(status: str) -> int:
    """Map a ``bqueues`` status word to its code, 0 if unknown."""
    return _lookup(QUEUE_STATUS, status)


def load_status(status: str) -> int:
    """Map an ``lsload`` status word to its code, 0 if unknown."""
    return _lookup(LOAD_STATUS, status)


def job_status(status: str) -> int:
    """Map a ``bjobs`` STAT word to its code, 0 if unknown."""
    return _lookup(JOB_STATUS, status)


def server_type(token: str) -> str:
    """Map the ``lshosts`` server column to servers/client/dynamic."""
    return SERVER_TYPE.get(token.strip().lower(), "unknown")


def strip_parens(resources: str) -> str:
    """Remove the parentheses LSF wraps around resource lists."""
    return resources.replace("(", "").replace(")", "")


def parse_limit(token: str) -> float:
    """Parse a numeric column where ``-`` means no limit.

    Returns:
        The value, or -1.0 for the ``-`` placeholder.

    Raises:
        NormalizationError: If the token is neither ``-`` nor a finite
            number.
    """
    token = token.strip()
    if token == PLACEHOLDER:
        return NO_LIMIT
    try:
        value = float(token)
    except ValueError:
        msg = f"not a number: {token!r}"
        raise NormalizationError(msg) from None
    if not math.isfinite(value):
        msg = f"not a finite number: {token!r}"
        raise NormalizationError(msg)
    return value


def convert_size(size: float, unit: str) -> float:
    """Convert ``size`` expressed in ``unit`` (K, M, G, T, P, E) to KiB.

    Raises:
        NormalizationError: If the unit is not recognized.
    """
    try:
        return size * SIZE_UNITS[unit.upper()]
    except KeyError:
        msg = f"unrecognized unit: {unit!r}"
        raise NormalizationError(msg) from None


def parse_size(token: str) -> float:
    """Parse a size such as ``"255.9G"`` into KiB.

    A bare number is taken as KiB, LSF's default unit. ``-`` yields -1.0.

    Raises:
        NormalizationError: If the token is malformed or the unit unknown.
    """
    token = token.strip()
    if token == PLACEHOLDER:
        return NO_LIMIT
    match = _SIZE_RE.match(token)
    if match is None:
        msg = f"not a size: {token!r}"
        raise NormalizationError(msg)
    return convert_size(float(match["size"]), match["unit"] or "K")


def parse_percent(token: str) -> float:
    """Parse a percentage such as ``"35%"`` into a value in [0, 100].

    ``-`` yields -1.0.

    Raises:
        NormalizationError: If the token is not a number within range.
    """
    token = token.strip()
    if token == PLACEHOLDER:
        return NO_LIMIT
    value = parse_limit(token.removesuffix("%"))
    if not 0.0 <= value <= 100.0:
        msg = f"percentage out of range: {token!r}"
        raise NormalizationError(msg)
    return value
