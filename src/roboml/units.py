"""
Canonical units for RoboML.

All quantities are normalised before arithmetic or comparison:
lengths to millimetres, speeds to millimetres per second, angles to
radians and time to seconds.
"""

import math
from typing import Union

from .ast import LengthUnit, SpeedUnit


LENGTH_FACTORS = {
    LengthUnit.MM: 1,
    LengthUnit.CM: 10,
    LengthUnit.DM: 100,
    LengthUnit.M: 1000,
}

SPEED_FACTORS = {
    SpeedUnit.MM_PER_SEC: 1,
    SpeedUnit.CM_PER_SEC: 10,
    SpeedUnit.DM_PER_SEC: 100,
    SpeedUnit.M_PER_SEC: 1000,
}

# Angles in scripts are written in degrees
DEGREES_TO_RADIANS = math.pi / 180.0

Number = Union[int, float]


def length_factor(unit: LengthUnit) -> int:
    """Millimetres per one `unit`."""
    return LENGTH_FACTORS[unit]


def speed_factor(unit: SpeedUnit) -> int:
    """Millimetres per second per one `unit`."""
    return SPEED_FACTORS[unit]


def to_millimetres(value: Number, unit: LengthUnit) -> float:
    return float(value) * LENGTH_FACTORS[unit]


def to_mm_per_second(value: Number, unit: SpeedUnit) -> float:
    return float(value) * SPEED_FACTORS[unit]


def to_radians(degrees: Number) -> float:
    return float(degrees) * DEGREES_TO_RADIANS
