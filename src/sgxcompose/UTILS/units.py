"""
Helpers for compose size and CPU values.
"""
import math
import re
from typing import Union

_UNITS = {
    "": 1,
    "b": 1,
    "k": 1024,
    "kb": 1024,
    "m": 1024 ** 2,
    "mb": 1024 ** 2,
    "g": 1024 ** 3,
    "gb": 1024 ** 3,
}

_SIZE_PATTERN = re.compile(r'^\s*(\d+(?:\.\d+)?)\s*([a-zA-Z]*)\s*$')


def parse_memory(value: Union[str, int]) -> int:
    """
    Converts a compose memory value like '4g' or '512m' to bytes.

    :param value: Size string or a plain byte count.
    :return: Number of bytes.
    :raises ValueError: If the value is not a recognised size.
    """
    if isinstance(value, bool):
        raise ValueError(f"Invalid memory size: {value!r}")
    if isinstance(value, int):
        return value
    match = _SIZE_PATTERN.match(str(value))
    if not match:
        raise ValueError(f"Invalid memory size: {value!r}")
    number, unit = match.groups()
    unit = unit.lower()
    if unit not in _UNITS:
        raise ValueError(f"Unknown memory unit {unit!r} in {value!r}")
    return int(float(number) * _UNITS[unit])


def parse_cpus(value: Union[str, int, float]) -> float:
    """
    Converts a compose CPU value ('1', '0.5', 2) to a float.
    """
    if isinstance(value, bool):
        raise ValueError(f"Invalid CPU count: {value!r}")
    try:
        cpus = float(value)
    except (TypeError, ValueError):
        raise ValueError(f"Invalid CPU count: {value!r}") from None
    if not math.isfinite(cpus):
        raise ValueError(f"Invalid CPU count: {value!r}")
    return cpus


def format_memory(num_bytes: int) -> str:
    """
    Renders a byte count with the largest unit that divides it evenly.
    """
    for suffix, factor in (("g", 1024 ** 3), ("m", 1024 ** 2), ("k", 1024)):
        if num_bytes and num_bytes % factor == 0:
            return f"{num_bytes // factor}{suffix}"
    return f"{num_bytes}b"
