"""
Decoder for single-line telemetry payloads emitted by the driving simulation.

A line is a set of ``key=value`` pairs separated by ``|``::

    speed_mps=12.5|throttle=0.8|brake=0.0|steering=-0.2|forward_hit_m=30.0

Decoding never fails. Missing, blank or non-numeric values become UNDEFINED,
unknown keys are ignored and a repeated key keeps its last value.
"""
import math
import re
from typing import Dict, Optional

from core.models.telemetry_field import TelemetryField
from core.models.telemetry_sample import UNDEFINED, TelemetrySample

PAIR_SEPARATOR = "|"
KEY_VALUE_SEPARATOR = "="

# Decimal literal with optional Java type suffix: 12, -0.2, .5, 3., 1e-3, 1.5f, 2d
_DECIMAL_RE = re.compile(r"[+-]?(?:\d+\.?\d*|\.\d+)(?:[eE][+-]?\d+)?[dDfF]?", re.ASCII)
# Hex literal needs a binary exponent: 0x1.8p1. Plain 0x10 is not a number.
_HEX_RE = re.compile(r"[+-]?0[xX](?:[0-9a-fA-F]+\.?[0-9a-fA-F]*|\.[0-9a-fA-F]+)[pP][+-]?\d+[dDfF]?", re.ASCII)
_TYPE_SUFFIXES = "dDfF"


def parse_pairs(line: str) -> Dict[str, str]:
    """Split a line into its key/value mapping. Tokens without '=' are dropped."""
    values: Dict[str, str] = {}
    for token in line.strip().split(PAIR_SEPARATOR):
        key, sep, value = token.partition(KEY_VALUE_SEPARATOR)
        if sep:
            values[key] = value
    return values


def parse_value(raw: Optional[str]) -> float:
    """Parse one field value, returning UNDEFINED when it is not a finite number."""
    if raw is None:
        return UNDEFINED
    text = raw.strip()
    if _DECIMAL_RE.fullmatch(text):
        value = float(text.rstrip(_TYPE_SUFFIXES))
    elif _HEX_RE.fullmatch(text):
        try:
            value = float.fromhex(text.rstrip(_TYPE_SUFFIXES))
        except OverflowError:
            return UNDEFINED
    else:
        return UNDEFINED
    # Overflowing literals such as 1e999 parse to inf
    if not math.isfinite(value):
        return UNDEFINED
    return value


def decode(line: str) -> TelemetrySample:
    """Decode one telemetry line into a fully populated TelemetrySample."""
    values = parse_pairs(line)
    return TelemetrySample(**{
        field.attribute: parse_value(values.get(field.key))
        for field in TelemetryField
    })
