"""
Tests for building Program Trees from YAML/JSON documents.
"""

import json
import textwrap

import pytest

from roboml import (
    Program, Function, Parameter,
    VariableDeclaration, Loop, Condition,
    Movement, Rotation, SetSpeed, FunctionCall, ReturnStatement,
    NumberLiteral, BooleanLiteral, VariableReference,
    ArithmeticExpression, ComparisonExpression, UnaryExpression,
    UnitExpression, SensorRead,
    ArithmeticOperator, ComparisonOperator, UnaryOperator,
    Direction, RotationDirection, LengthUnit, SpeedUnit, SensorKind,
    VariableType, ReturnType,
    MalformedTreeError, load_program, program_from_dict, validate, evaluate,
)
from roboml.loader import expression_from_data, statement_from_data


SQUARE_YAML = textwrap.dedent("""
    functions:
      - name: square
        parameters: [{name: side, type: number}]
        returns: void
        body:
          - kind: declare
            name: i
            type: number
            value: 0
          - kind: loop
            condition: {op: "<", left: i, right: 4}
            body:
              - {kind: move, direction: FORWARD, distance: side, unit: CM}
              - {kind: rotate, direction: CLOCK, angle: 90}
              - {kind: assign, target: i, value: {op: "+", left: i, right: 1}}
    entry:
      - {kind: speed, value: 10, unit: CM_PER_SEC}
      - {kind: call, name: square, args: [50]}
""")


class TestExpressions:
    """Expression documents."""

    def test_scalars(self):
        assert expression_from_data(3) == NumberLiteral(3)
        assert expression_from_data(2.5) == NumberLiteral(2.5)
        assert expression_from_data(True) == BooleanLiteral(True)
        assert expression_from_data("x") == VariableReference("x")

    def test_binary_operators(self):
        assert expression_from_data({"op": "%", "left": "n", "right": 2}) == ArithmeticExpression(
            VariableReference("n"), ArithmeticOperator.MODULO, NumberLiteral(2)
        )
        assert expression_from_data({"op": ">=", "left": 1, "right": 2}) == ComparisonExpression(
            NumberLiteral(1), ComparisonOperator.GREATER_EQ, NumberLiteral(2)
        )

    def test_unary_operators(self):
        assert expression_from_data({"op": "-", "operand": 4}) == UnaryExpression(
            UnaryOperator.NEGATE, NumberLiteral(4)
        )
        assert expression_from_data({"op": "not", "operand": "done"}) == UnaryExpression(
            UnaryOperator.NOT, VariableReference("done")
        )

    def test_unit_sensor_call(self):
        assert expression_from_data({"unit": "cm", "value": 5}) == UnitExpression(NumberLiteral(5), LengthUnit.CM)
        assert expression_from_data({"sensor": "distance"}) == SensorRead(SensorKind.DISTANCE)
        assert expression_from_data({"call": "f", "args": [1]}) == FunctionCall("f", (NumberLiteral(1),))
        assert expression_from_data({"var": "true"}) == VariableReference("true")

    def test_unknown_operator(self):
        with pytest.raises(MalformedTreeError):
            expression_from_data({"op": "**", "left": 1, "right": 2})

    def test_missing_operand(self):
        with pytest.raises(MalformedTreeError, match="right"):
            expression_from_data({"op": "+", "left": 1})

    def test_not_an_expression(self):
        with pytest.raises(MalformedTreeError):
            expression_from_data([1, 2])


class TestStatements:
    """Statement documents."""

    def test_condition(self):
        stmt = statement_from_data({
            "kind": "if",
            "condition": True,
            "then": [{"kind": "call", "name": "f"}],
            "else": [{"kind": "return"}],
        })
        assert stmt == Condition(BooleanLiteral(True), (FunctionCall("f"),), (ReturnStatement(),))

    def test_defaults_for_units(self):
        assert statement_from_data({"kind": "move", "direction": "left", "distance": 5}) == Movement(
            Direction.LEFT, NumberLiteral(5), LengthUnit.MM
        )
        assert statement_from_data({"kind": "speed", "value": 5}) == SetSpeed(
            NumberLiteral(5), SpeedUnit.MM_PER_SEC
        )

    def test_untyped_declaration(self):
        assert statement_from_data({"kind": "declare", "name": "x", "value": 1}) == VariableDeclaration(
            "x", None, NumberLiteral(1)
        )

    def test_unknown_kind(self):
        with pytest.raises(MalformedTreeError, match="unknown statement kind"):
            statement_from_data({"kind": "jump"})

    def test_invalid_direction(self):
        with pytest.raises(MalformedTreeError, match="direction"):
            statement_from_data({"kind": "rotate", "direction": "UP", "angle": 90})

    def test_missing_rotation_direction(self):
        with pytest.raises(MalformedTreeError, match="missing"):
            statement_from_data({"kind": "rotate", "angle": 90})


class TestPrograms:
    """Whole documents and files."""

    def test_load_yaml(self, tmp_path):
        path = tmp_path / "square.yaml"
        path.write_text(SQUARE_YAML)
        prog = load_program(path)

        assert isinstance(prog, Program)
        assert [f.name for f in prog.functions] == ["square"]
        assert prog.functions[0].parameters == (Parameter("side", VariableType.NUMBER),)
        assert prog.entry.is_entry
        assert isinstance(prog.functions[0].body[1], Loop)
        assert validate(prog).diagnostics == []

        scene = evaluate(prog)
        assert len(scene.snapshots) == 8

    def test_load_json(self, tmp_path):
        path = tmp_path / "prog.json"
        path.write_text(json.dumps({"entry": [{"kind": "rotate", "direction": "CLOCK", "angle": 90}]}))
        prog = load_program(path)
        assert prog.entry.body == (Rotation(RotationDirection.CLOCK, NumberLiteral(90)),)

    def test_entry_as_mapping(self):
        prog = program_from_dict({"entry": {"body": [{"kind": "call", "name": "go"}]}})
        assert prog.entry == Function(None, (), ReturnType.VOID, (FunctionCall("go"),))

    def test_missing_entry_left_to_validator(self):
        prog = program_from_dict({"functions": []})
        assert prog.entry is None
        assert [d.code for d in validate(prog).diagnostics] == ["E301"]

    def test_return_type_parsed(self):
        prog = program_from_dict({
            "functions": [{"name": "f", "returns": "BOOLEAN", "body": [{"kind": "return", "value": True}]}],
            "entry": [],
        })
        assert prog.functions[0].return_type is ReturnType.BOOLEAN

    def test_invalid_json(self, tmp_path):
        path = tmp_path / "broken.json"
        path.write_text("{not json")
        with pytest.raises(MalformedTreeError, match="invalid JSON"):
            load_program(path)

    def test_document_must_be_mapping(self, tmp_path):
        path = tmp_path / "list.yaml"
        path.write_text("- 1\n- 2\n")
        with pytest.raises(MalformedTreeError):
            load_program(path)
