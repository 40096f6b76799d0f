"""
Tests for the Arduino code emitter.
"""

import pytest

from roboml import (
    Program, Function, Parameter,
    VariableDeclaration, Assignment, Loop, Condition,
    Movement, Rotation, SetSpeed, FunctionCall, ReturnStatement,
    NumberLiteral, BooleanLiteral, VariableReference,
    ArithmeticExpression, ComparisonExpression, UnaryExpression,
    UnitExpression, SensorRead,
    ArithmeticOperator, ComparisonOperator, UnaryOperator,
    Direction, RotationDirection, LengthUnit, SpeedUnit, SensorKind,
    VariableType, ReturnType,
    ArduinoEmitter, SimulationConfig, MalformedTreeError, emit, evaluate,
)
from roboml.emitter import format_number


def num(value):
    return NumberLiteral(value)


def var(name):
    return VariableReference(name)


def program(*body, functions=()):
    return Program(tuple(functions), Function(None, (), ReturnType.VOID, tuple(body)))


def setup_body(source):
    """Lines of setup() after the fixed preamble, without indentation."""
    lines = source.splitlines()
    start = lines.index("void setup() {") + 4
    end = lines.index("}", start)
    return [line.strip() for line in lines[start:end]]


class TestExpressions:
    """Expression lowering is fully parenthesized."""

    def setup_method(self):
        self.emitter = ArduinoEmitter()

    def test_comparison_shape(self):
        """`a < b` becomes `(a < b)` exactly."""
        expr = ComparisonExpression(var("a"), ComparisonOperator.LESS, var("b"))
        assert self.emitter.expression(expr) == "(a < b)"

    def test_nested_arithmetic_keeps_all_parentheses(self):
        inner = ArithmeticExpression(var("a"), ArithmeticOperator.MULTIPLY, num(2))
        expr = ArithmeticExpression(inner, ArithmeticOperator.PLUS, num(1))
        assert self.emitter.expression(expr) == "((a * 2) + 1)"

    @pytest.mark.parametrize("op, text", [
        (ComparisonOperator.LESS_EQ, "<="),
        (ComparisonOperator.GREATER, ">"),
        (ComparisonOperator.GREATER_EQ, ">="),
        (ComparisonOperator.EQUALS, "=="),
        (ComparisonOperator.NOT_EQUALS, "!="),
    ])
    def test_comparison_operators(self, op, text):
        expr = ComparisonExpression(num(1), op, num(2))
        assert self.emitter.expression(expr) == f"(1 {text} 2)"

    def test_modulo(self):
        expr = ArithmeticExpression(var("n"), ArithmeticOperator.MODULO, num(3))
        assert self.emitter.expression(expr) == "(n % 3)"

    def test_unary(self):
        assert self.emitter.expression(UnaryExpression(UnaryOperator.NEGATE, var("x"))) == "(-x)"
        assert self.emitter.expression(UnaryExpression(UnaryOperator.NOT, var("ok"))) == "(!ok)"

    def test_literals(self):
        assert self.emitter.expression(BooleanLiteral(True)) == "true"
        assert self.emitter.expression(BooleanLiteral(False)) == "false"
        assert self.emitter.expression(num(2.5)) == "2.5"
        assert self.emitter.expression(num(3.0)) == "3"

    def test_unit_expression(self):
        assert self.emitter.expression(UnitExpression(num(5), LengthUnit.CM)) == "(5 * 10)"
        assert self.emitter.expression(UnitExpression(num(5), LengthUnit.MM)) == "5"

    def test_sensors(self):
        assert self.emitter.expression(SensorRead(SensorKind.DISTANCE)) == "robot.getDistance()"
        assert self.emitter.expression(SensorRead(SensorKind.TIMESTAMP)) == "(millis() / 1000.0)"

    def test_call_expression(self):
        expr = FunctionCall("area", (var("w"), num(2)))
        assert self.emitter.expression(expr) == "area(w, 2)"

    def test_missing_expression_is_malformed(self):
        with pytest.raises(MalformedTreeError):
            self.emitter.expression(None)

    def test_format_number_rejects_bool(self):
        with pytest.raises(MalformedTreeError):
            format_number(True)


class TestCommands:
    """Robot commands lower to actuator / delay / stop triples."""

    def test_movement_triple(self):
        source = emit(program(Movement(Direction.FORWARD, num(50), LengthUnit.CM)))
        assert setup_body(source) == [
            "robot.setCarAdvance(currentSpeed);",
            "robot.delayMS((((50 * 10) * 1000) / currentSpeed));",
            "robot.setCarStop();",
        ]

    @pytest.mark.parametrize("direction, actuator", [
        (Direction.BACKWARD, "setCarBackoff"),
        (Direction.LEFT, "setCarLeft"),
        (Direction.RIGHT, "setCarRight"),
    ])
    def test_movement_actuators(self, direction, actuator):
        source = emit(program(Movement(direction, var("d"), LengthUnit.MM)))
        body = setup_body(source)
        assert body[0] == f"robot.{actuator}(currentSpeed);"
        assert body[1] == "robot.delayMS(((d * 1000) / currentSpeed));"

    def test_movement_delay_multiplies_before_dividing(self):
        """`currentSpeed` is an int, so the millisecond scale comes first."""
        source = emit(program(Movement(Direction.FORWARD, num(150), LengthUnit.MM)))
        assert setup_body(source)[1] == "robot.delayMS(((150 * 1000) / currentSpeed));"

    @pytest.mark.parametrize("distance, speed", [(150, 100), (7, 3), (1234, 250)])
    def test_movement_delay_matches_simulation(self, distance, speed):
        """Sketch timing in integer arithmetic equals the simulated duration."""
        prog = program(
            SetSpeed(num(speed), SpeedUnit.MM_PER_SEC),
            Movement(Direction.FORWARD, num(distance), LengthUnit.MM),
        )
        delay = setup_body(emit(prog))[2]
        assert delay == f"robot.delayMS((({distance} * 1000) / currentSpeed));"
        firmware_ms = (distance * 1000) // speed
        assert abs(firmware_ms - evaluate(prog).time * 1000) < 1

    def test_rotation_triple(self):
        source = emit(program(Rotation(RotationDirection.COUNTERCLOCK, num(90))))
        assert setup_body(source) == [
            "robot.setCarRotateLeft(currentSpeed);",
            "robot.delayMS((((90 * DEG_TO_RAD) / angularRate) * 1000));",
            "robot.setCarStop();",
        ]

    def test_clockwise_actuator(self):
        source = emit(program(Rotation(RotationDirection.CLOCK, num(45))))
        assert setup_body(source)[0] == "robot.setCarRotateRight(currentSpeed);"

    def test_set_speed(self):
        source = emit(program(
            SetSpeed(num(10), SpeedUnit.CM_PER_SEC),
            SetSpeed(num(250), SpeedUnit.MM_PER_SEC),
        ))
        assert setup_body(source) == [
            "currentSpeed = (10 * 10);",
            "currentSpeed = 250;",
        ]

    def test_missing_direction_is_malformed(self):
        with pytest.raises(MalformedTreeError):
            emit(program(Movement(None, num(1), LengthUnit.MM)))


class TestStatements:
    """Control flow and declarations."""

    def test_declarations(self):
        source = emit(program(
            VariableDeclaration("n", VariableType.NUMBER),
            VariableDeclaration("done", VariableType.BOOLEAN),
            VariableDeclaration("d", VariableType.NUMBER, SensorRead(SensorKind.DISTANCE)),
            Assignment("n", ArithmeticExpression(var("n"), ArithmeticOperator.PLUS, num(1))),
        ))
        assert setup_body(source) == [
            "int n = 0;",
            "bool done = false;",
            "int d = robot.getDistance();",
            "n = (n + 1);",
        ]

    def test_loop_and_condition_indent(self):
        source = emit(program(
            Loop(
                ComparisonExpression(SensorRead(SensorKind.DISTANCE), ComparisonOperator.GREATER, num(100)),
                (
                    Condition(
                        BooleanLiteral(True),
                        (FunctionCall("beep", ()),),
                        (ReturnStatement(),),
                    ),
                ),
            ),
        ))
        lines = source.splitlines()
        start = lines.index("    while ((robot.getDistance() > 100)) {")
        assert lines[start:start + 7] == [
            "    while ((robot.getDistance() > 100)) {",
            "        if (true) {",
            "            beep();",
            "        } else {",
            "            return;",
            "        }",
            "    }",
        ]

    def test_condition_without_else(self):
        source = emit(program(Condition(var("ok"), (FunctionCall("f", ()),), ())))
        assert setup_body(source) == ["if (ok) {", "f();", "}"]


class TestProgram:
    """Whole-sketch layout."""

    def make_program(self):
        square = Function(
            "square",
            (Parameter("side", VariableType.NUMBER),),
            ReturnType.VOID,
            (Movement(Direction.FORWARD, var("side"), LengthUnit.CM),),
        )
        area = Function(
            "area",
            (Parameter("w", VariableType.NUMBER), Parameter("big", VariableType.BOOLEAN)),
            ReturnType.NUMBER,
            (ReturnStatement(ArithmeticExpression(var("w"), ArithmeticOperator.MULTIPLY, var("w"))),),
        )
        return program(FunctionCall("square", (num(50),)), functions=[square, area])

    def test_headers_and_globals(self):
        lines = emit(self.make_program()).splitlines()
        assert lines[:4] == [
            "#include <Arduino.h>",
            "#include <MotorWheel.h>",
            "#include <Omni4WD.h>",
            "#include <PID_Beta6.h>",
        ]
        assert "Omni4WD robot;" in lines
        assert "int currentSpeed = 100;" in lines
        assert any(line.startswith("const float angularRate = 1.5707") for line in lines)

    def test_forward_declarations_before_setup(self):
        lines = emit(self.make_program()).splitlines()
        decl = lines.index("void square(int side);")
        decl2 = lines.index("int area(int w, bool big);")
        assert decl < decl2 < lines.index("void setup() {")

    def test_entry_inlined_in_setup(self):
        source = emit(self.make_program())
        lines = source.splitlines()
        setup = lines.index("void setup() {")
        assert lines[setup + 1:setup + 3] == [
            "    Serial.begin(9600);",
            "    robot.PIDEnable(0.31, 0.01, 0.0, 10);",
        ]
        assert setup_body(source) == ["square(50);"]
        assert "void loop() {" in lines
        assert "void entry" not in source

    def test_function_definitions_after_loop(self):
        lines = emit(self.make_program()).splitlines()
        loop = lines.index("void loop() {")
        definition = lines.index("int area(int w, bool big) {")
        assert definition > loop
        assert lines[definition + 1] == "    return (w * w);"
        assert lines[definition + 2] == "}"

    def test_config_sets_globals(self):
        config = SimulationConfig(initial_speed=250.0, angular_rate=2.0)
        lines = emit(program(), config).splitlines()
        assert "int currentSpeed = 250;" in lines
        assert "const float angularRate = 2;" in lines

    def test_no_forward_declarations_without_functions(self):
        source = emit(program())
        assert "// Forward declarations" not in source

    def test_emission_is_deterministic(self):
        emitter = ArduinoEmitter()
        prog = self.make_program()
        assert emitter.emit(prog) == emitter.emit(prog)
        assert emitter.emit_lines(prog) == emitter.emit(prog).splitlines()

    def test_missing_entry_is_malformed(self):
        with pytest.raises(MalformedTreeError):
            emit(Program((), None))

    def test_does_not_evaluate(self):
        """Dividing by a literal zero is emitted, not computed."""
        expr = ArithmeticExpression(num(1), ArithmeticOperator.DIVIDE, num(0))
        source = emit(program(Movement(Direction.FORWARD, expr, LengthUnit.MM)))
        assert "(1 / 0)" in source
