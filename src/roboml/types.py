"""
Expression types for the RoboML validator.

Inference works bottom-up over four kinds. UNKNOWN is the bottom value: it
is produced whenever inference cannot proceed (an unresolved reference or
call) and it is compatible with everything, which stops one mistake from
cascading into a chain of follow-on errors.
"""

from enum import Enum
from typing import Optional

from .ast import ReturnType, VariableType


class ExprType(Enum):
    NUMBER = "number"
    BOOLEAN = "boolean"
    VOID = "void"
    UNKNOWN = "unknown"

    def __str__(self) -> str:
        return self.value

    def is_compatible(self, other: "ExprType") -> bool:
        """Types match, or either side is unknown."""
        if self is ExprType.UNKNOWN or other is ExprType.UNKNOWN:
            return True
        return self is other


NUMBER = ExprType.NUMBER
BOOLEAN = ExprType.BOOLEAN
VOID = ExprType.VOID
UNKNOWN = ExprType.UNKNOWN


def from_variable_type(vtype: Optional[VariableType]) -> ExprType:
    if vtype is VariableType.NUMBER:
        return NUMBER
    if vtype is VariableType.BOOLEAN:
        return BOOLEAN
    return UNKNOWN


def from_return_type(rtype: Optional[ReturnType]) -> ExprType:
    if rtype is ReturnType.NUMBER:
        return NUMBER
    if rtype is ReturnType.BOOLEAN:
        return BOOLEAN
    if rtype is ReturnType.VOID:
        return VOID
    return UNKNOWN
