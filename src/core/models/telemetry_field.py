"""Telemetry field enumeration mapping wire keys to sample attributes."""
from enum import Enum


class TelemetryField(Enum):
    """The nine keys understood on the wire, in display order."""
    SPEED = "speed_mps"
    THROTTLE = "throttle"
    BRAKE = "brake"
    STEERING = "steering"
    FORWARD_HIT = "forward_hit_m"
    LEFT_HIT = "left_hit_m"
    RIGHT_HIT = "right_hit_m"
    SWEEP_ANGLE = "sweep_angle_deg"
    SWEEP_HIT = "sweep_hit_m"

    @property
    def key(self) -> str:
        return self.value

    @property
    def attribute(self) -> str:
        """Name of the matching TelemetrySample attribute."""
        return _ATTRIBUTES[self]

    @property
    def unit(self) -> str:
        return _UNITS[self]


_ATTRIBUTES = {
    TelemetryField.SPEED: "speed",
    TelemetryField.THROTTLE: "throttle",
    TelemetryField.BRAKE: "brake",
    TelemetryField.STEERING: "steering",
    TelemetryField.FORWARD_HIT: "forward_distance",
    TelemetryField.LEFT_HIT: "left_distance",
    TelemetryField.RIGHT_HIT: "right_distance",
    TelemetryField.SWEEP_ANGLE: "sweep_angle",
    TelemetryField.SWEEP_HIT: "sweep_distance",
}

_UNITS = {
    TelemetryField.SPEED: "m/s",
    TelemetryField.THROTTLE: "",
    TelemetryField.BRAKE: "",
    TelemetryField.STEERING: "",
    TelemetryField.FORWARD_HIT: "m",
    TelemetryField.LEFT_HIT: "m",
    TelemetryField.RIGHT_HIT: "m",
    TelemetryField.SWEEP_ANGLE: "deg",
    TelemetryField.SWEEP_HIT: "m",
}
