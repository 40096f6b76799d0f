"""
Arduino code emitter for RoboML programs.

Lowers a Program Tree to C++ source for an Omni4WD platform. Lowering is
purely symbolic: expressions become source text and durations stay
expressions over `currentSpeed` and `angularRate`, nothing is evaluated.

Usage:
    from roboml import emit

    source = emit(program)
    Path("robot.ino").write_text(source)
"""

import logging
from typing import List, Optional, Sequence

from .ast import (
    Program, Function, Parameter, Statement,
    VariableDeclaration, Assignment, Loop, Condition,
    Movement, Rotation, SetSpeed, FunctionCall, ReturnStatement,
    Expression, NumberLiteral, BooleanLiteral, VariableReference,
    ArithmeticExpression, ComparisonExpression, UnaryExpression,
    UnitExpression, SensorRead,
    Direction, RotationDirection, SensorKind, UnaryOperator,
    VariableType, ReturnType,
)
from .config import DEFAULT_ANGULAR_RATE, DEFAULT_INITIAL_SPEED, SimulationConfig
from .errors import MalformedTreeError
from .units import length_factor, speed_factor

logger = logging.getLogger(__name__)

INDENT = "    "

HEADERS = (
    "#include <Arduino.h>",
    "#include <MotorWheel.h>",
    "#include <Omni4WD.h>",
    "#include <PID_Beta6.h>",
)

_MOVE_ACTUATORS = {
    Direction.FORWARD: "setCarAdvance",
    Direction.BACKWARD: "setCarBackoff",
    Direction.LEFT: "setCarLeft",
    Direction.RIGHT: "setCarRight",
}

_ROTATE_ACTUATORS = {
    RotationDirection.CLOCK: "setCarRotateRight",
    RotationDirection.COUNTERCLOCK: "setCarRotateLeft",
}

_VARIABLE_TYPES = {
    VariableType.NUMBER: "int",
    VariableType.BOOLEAN: "bool",
}

_RETURN_TYPES = {
    ReturnType.NUMBER: "int",
    ReturnType.BOOLEAN: "bool",
    ReturnType.VOID: "void",
}

_SENSORS = {
    SensorKind.DISTANCE: "robot.getDistance()",
    SensorKind.TIMESTAMP: "(millis() / 1000.0)",
}


def format_number(value) -> str:
    """Literal text for a number; integral floats are written without a fraction."""
    if isinstance(value, bool):
        raise MalformedTreeError(f"expected a number, got {value!r}")
    if isinstance(value, float) and value.is_integer():
        return str(int(value))
    return repr(value)


class ArduinoEmitter:
    """
    Emits one Arduino sketch per call to `emit()`.

    The emitter keeps an output buffer and an indent counter; both are
    reset on every call, so an instance may be reused but must not be
    shared between threads.
    """

    def __init__(
        self,
        initial_speed: float = DEFAULT_INITIAL_SPEED,
        angular_rate: float = DEFAULT_ANGULAR_RATE,
    ):
        self.initial_speed = initial_speed
        self.angular_rate = angular_rate
        self.lines: List[str] = []
        self.indent = 0

    def emit(self, program: Program) -> str:
        """Lower a complete program to sketch source text."""
        return "\n".join(self.emit_lines(program)) + "\n"

    def emit_lines(self, program: Program) -> List[str]:
        """Lower a complete program to an ordered list of source lines."""
        if program.entry is None:
            raise MalformedTreeError("program has no entry function", program)

        self.lines = []
        self.indent = 0
        named = [f for f in program.functions if f.name]

        for header in HEADERS:
            self._line(header)
        self._line("")
        self._line("// Robot initialization")
        self._line("Omni4WD robot;")
        self._line("")
        self._line("// Current speed (mm/s) and fixed rotation rate (rad/s)")
        self._line(f"int currentSpeed = {format_number(float(self.initial_speed))};")
        self._line(f"const float angularRate = {format_number(float(self.angular_rate))};")
        self._line("")

        if named:
            self._line("// Forward declarations")
            for func in named:
                self._line(f"{self._signature(func)};")
            self._line("")

        self._line("void setup() {")
        self.indent += 1
        self._line("Serial.begin(9600);")
        self._line("robot.PIDEnable(0.31, 0.01, 0.0, 10);")
        self._line("")
        self._block(program.entry.body)
        self.indent -= 1
        self._line("}")
        self._line("")

        self._line("void loop() {")
        self.indent += 1
        self._line("// Program execution happens in setup()")
        self._line("delay(100);")
        self.indent -= 1
        self._line("}")

        for func in named:
            self._line("")
            self._function(func)

        logger.info("emitted %d line(s) for %d function(s)", len(self.lines), len(named))
        return self.lines

    # =========================================================================
    # Declarations
    # =========================================================================

    def _line(self, text: str) -> None:
        self.lines.append(INDENT * self.indent + text if text else "")

    def _signature(self, func: Function) -> str:
        if func.return_type not in _RETURN_TYPES:
            raise MalformedTreeError(f"function '{func.name}' has no return type", func)
        params = ", ".join(self._parameter(p) for p in func.parameters)
        return f"{_RETURN_TYPES[func.return_type]} {func.name}({params})"

    def _parameter(self, param: Parameter) -> str:
        if param.type not in _VARIABLE_TYPES:
            raise MalformedTreeError(f"parameter '{param.name}' has no type", param)
        return f"{_VARIABLE_TYPES[param.type]} {param.name}"

    def _function(self, func: Function) -> None:
        self._line(f"{self._signature(func)} {{")
        self.indent += 1
        self._block(func.body)
        self.indent -= 1
        self._line("}")

    # =========================================================================
    # Statements
    # =========================================================================

    def _block(self, statements: Sequence[Statement]) -> None:
        for stmt in statements:
            self._statement(stmt)

    def _statement(self, stmt: Statement) -> None:
        if isinstance(stmt, VariableDeclaration):
            self._declaration(stmt)
        elif isinstance(stmt, Assignment):
            self._line(f"{stmt.target} = {self.expression(stmt.value)};")
        elif isinstance(stmt, Loop):
            self._line(f"while ({self.expression(stmt.condition)}) {{")
            self.indent += 1
            self._block(stmt.body)
            self.indent -= 1
            self._line("}")
        elif isinstance(stmt, Condition):
            self._condition(stmt)
        elif isinstance(stmt, Movement):
            self._movement(stmt)
        elif isinstance(stmt, Rotation):
            self._rotation(stmt)
        elif isinstance(stmt, SetSpeed):
            if stmt.unit is None:
                raise MalformedTreeError("speed change without unit", stmt)
            speed = self._scaled(self.expression(stmt.speed), speed_factor(stmt.unit))
            self._line(f"currentSpeed = {speed};")
        elif isinstance(stmt, FunctionCall):
            self._line(f"{self.expression(stmt)};")
        elif isinstance(stmt, ReturnStatement):
            if stmt.value is None:
                self._line("return;")
            else:
                self._line(f"return {self.expression(stmt.value)};")
        else:
            raise MalformedTreeError(f"Unknown statement type: {type(stmt).__name__}", stmt)

    def _declaration(self, decl: VariableDeclaration) -> None:
        type_name = _VARIABLE_TYPES.get(decl.type, "auto")
        if decl.initializer is not None:
            value = self.expression(decl.initializer)
        elif decl.type is VariableType.BOOLEAN:
            value = "false"
        elif decl.type is VariableType.NUMBER:
            value = "0"
        else:
            raise MalformedTreeError(f"variable '{decl.name}' has neither type nor initializer", decl)
        self._line(f"{type_name} {decl.name} = {value};")

    def _condition(self, cond: Condition) -> None:
        self._line(f"if ({self.expression(cond.condition)}) {{")
        self.indent += 1
        self._block(cond.then_body)
        self.indent -= 1
        if cond.else_body:
            self._line("} else {")
            self.indent += 1
            self._block(cond.else_body)
            self.indent -= 1
        self._line("}")

    def _movement(self, move: Movement) -> None:
        if move.direction is None or move.unit is None:
            raise MalformedTreeError("movement without direction or unit", move)
        distance = self._scaled(self.expression(move.distance), length_factor(move.unit))
        self._actuate(_MOVE_ACTUATORS[move.direction], f"(({distance} * 1000) / currentSpeed)")

    def _rotation(self, rot: Rotation) -> None:
        if rot.direction is None:
            raise MalformedTreeError("rotation without direction", rot)
        angle = f"({self.expression(rot.angle)} * DEG_TO_RAD)"
        self._actuate(_ROTATE_ACTUATORS[rot.direction], f"(({angle} / angularRate) * 1000)")

    def _actuate(self, actuator: str, delay: str) -> None:
        self._line(f"robot.{actuator}(currentSpeed);")
        self._line(f"robot.delayMS({delay});")
        self._line("robot.setCarStop();")

    @staticmethod
    def _scaled(text: str, factor: int) -> str:
        return text if factor == 1 else f"({text} * {factor})"

    # =========================================================================
    # Expressions
    # =========================================================================

    def expression(self, expr: Optional[Expression]) -> str:
        """Source text for an expression; binary forms are always parenthesized."""
        if isinstance(expr, BooleanLiteral):
            return "true" if expr.value else "false"
        elif isinstance(expr, NumberLiteral):
            return format_number(expr.value)
        elif isinstance(expr, VariableReference):
            return expr.name
        elif isinstance(expr, (ArithmeticExpression, ComparisonExpression)):
            left = self.expression(expr.left)
            right = self.expression(expr.right)
            return f"({left} {expr.operator.value} {right})"
        elif isinstance(expr, UnaryExpression):
            operand = self.expression(expr.operand)
            if expr.operator is UnaryOperator.NEGATE:
                return f"(-{operand})"
            elif expr.operator is UnaryOperator.NOT:
                return f"(!{operand})"
            raise MalformedTreeError(f"Unknown unary operator: {expr.operator}", expr)
        elif isinstance(expr, UnitExpression):
            return self._scaled(self.expression(expr.value), length_factor(expr.unit))
        elif isinstance(expr, SensorRead):
            return _SENSORS[expr.sensor]
        elif isinstance(expr, FunctionCall):
            args = ", ".join(self.expression(arg) for arg in expr.arguments)
            return f"{expr.name}({args})"
        elif expr is None:
            raise MalformedTreeError("missing expression")
        else:
            raise MalformedTreeError(f"Unknown expression type: {type(expr).__name__}", expr)


def emit(program: Program, config: Optional[SimulationConfig] = None) -> str:
    """
    Convenience function to lower a program to Arduino source.

    Args:
        program: The Program Tree
        config: Supplies the initial speed and angular rate (defaults if omitted)

    Returns:
        The complete sketch as a single string
    """
    config = config or SimulationConfig()
    emitter = ArduinoEmitter(initial_speed=config.initial_speed, angular_rate=config.angular_rate)
    return emitter.emit(program)
