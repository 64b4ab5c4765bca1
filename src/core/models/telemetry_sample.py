"""
Telemetry sample model.
"""
import math
from dataclasses import dataclass, fields
from typing import Dict, List

from core.models.telemetry_field import TelemetryField

# Marks a field that was missing or unparseable in the source line.
# Kept as NaN so it can never be mistaken for a measured 0.0.
UNDEFINED: float = math.nan


def is_undefined(value: float) -> bool:
    """Return True if value is the undefined sentinel."""
    return math.isnan(value)


@dataclass(frozen=True)
class TelemetrySample:
    """
    One vehicle-state reading from the driving simulation.
    Distances are in meters, angles in degrees, speed in meters per second.
    Every field is always set, either to a finite value or to UNDEFINED.
    """
    speed: float = UNDEFINED
    throttle: float = UNDEFINED
    brake: float = UNDEFINED
    steering: float = UNDEFINED
    forward_distance: float = UNDEFINED
    left_distance: float = UNDEFINED
    right_distance: float = UNDEFINED
    sweep_angle: float = UNDEFINED
    sweep_distance: float = UNDEFINED

    @classmethod
    def undefined(cls) -> "TelemetrySample":
        """Sample with every field set to UNDEFINED."""
        return cls()

    def is_defined(self, attribute: str) -> bool:
        return not is_undefined(getattr(self, attribute))

    def defined_fields(self) -> List[TelemetryField]:
        """Fields that carry a real reading, in wire order."""
        return [f for f in TelemetryField if self.is_defined(f.attribute)]

    def as_dict(self) -> Dict[str, float]:
        return {f.name: getattr(self, f.name) for f in fields(self)}

    def as_wire_dict(self) -> Dict[str, float]:
        """Values keyed by their wire key (e.g. ``speed_mps``)."""
        return {f.key: getattr(self, f.attribute) for f in TelemetryField}
