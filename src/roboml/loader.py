"""
Build Program Trees from plain documents.

The grammar front end is not part of this package. For scripting and the
CLI a program can instead be written as a YAML or JSON document:

    functions:
      - name: square
        parameters: [{name: side, type: number}]
        returns: void
        body:
          - {kind: move, direction: FORWARD, distance: side, unit: CM}
          - {kind: rotate, direction: CLOCK, angle: 90}
    entry:
      - {kind: speed, value: 10, unit: CM_PER_SEC}
      - {kind: call, name: square, args: [50]}

Statements are mappings with a `kind` key. Expressions are scalars
(numbers, `true`/`false`, or a bare variable name) or mappings:

    {op: "+", left: a, right: 1}        arithmetic or comparison
    {op: "-", operand: x}               negation ("not" for logical not)
    {unit: CM, value: 5}                length in a unit
    {sensor: DISTANCE}                  sensor read
    {call: f, args: [1, 2]}             function call
    {var: x}                            explicit variable reference
"""

import json
from pathlib import Path
from typing import Any, Callable, Dict, Mapping, Union

import yaml

from .ast import (
    Program, Function, Parameter, Statement,
    VariableDeclaration, Assignment, Loop, Condition,
    Movement, Rotation, SetSpeed, FunctionCall, ReturnStatement,
    Expression, NumberLiteral, BooleanLiteral, VariableReference,
    ArithmeticExpression, ComparisonExpression, UnaryExpression,
    UnitExpression, SensorRead,
    ArithmeticOperator, ComparisonOperator, UnaryOperator,
    Direction, RotationDirection, LengthUnit, SpeedUnit, SensorKind,
    VariableType, ReturnType,
)
from .errors import MalformedTreeError

_ARITHMETIC = {op.value: op for op in ArithmeticOperator}
_COMPARISON = {op.value: op for op in ComparisonOperator}
_UNARY = {"-": UnaryOperator.NEGATE, "negate": UnaryOperator.NEGATE, "not": UnaryOperator.NOT}


def _enum(enum_cls, value: Any, what: str, required: bool = True):
    if value is None:
        if required:
            raise MalformedTreeError(f"missing {what}")
        return None
    text = str(value).strip()
    try:
        return enum_cls[text.upper()]
    except KeyError:
        pass
    try:
        return enum_cls(text)
    except ValueError:
        choices = ", ".join(m.value for m in enum_cls)
        raise MalformedTreeError(f"invalid {what} {value!r} (expected one of: {choices})")


def _require(data: Mapping[str, Any], key: str, what: str) -> Any:
    if key not in data:
        raise MalformedTreeError(f"{what} is missing '{key}'")
    return data[key]


# =============================================================================
# Expressions
# =============================================================================

def expression_from_data(data: Any) -> Expression:
    """Build an expression node from a scalar or a mapping."""
    if isinstance(data, bool):
        return BooleanLiteral(data)
    if isinstance(data, (int, float)):
        return NumberLiteral(data)
    if isinstance(data, str):
        return VariableReference(data)
    if not isinstance(data, Mapping):
        raise MalformedTreeError(f"cannot build an expression from {data!r}")

    if "op" in data:
        op = str(data["op"]).strip()
        if "operand" in data:
            if op not in _UNARY:
                raise MalformedTreeError(f"unknown unary operator {op!r}")
            return UnaryExpression(_UNARY[op], expression_from_data(data["operand"]))
        left = expression_from_data(_require(data, "left", "binary expression"))
        right = expression_from_data(_require(data, "right", "binary expression"))
        if op in _ARITHMETIC:
            return ArithmeticExpression(left, _ARITHMETIC[op], right)
        if op in _COMPARISON:
            return ComparisonExpression(left, _COMPARISON[op], right)
        raise MalformedTreeError(f"unknown operator {op!r}")
    if "unit" in data:
        return UnitExpression(
            expression_from_data(_require(data, "value", "unit expression")),
            _enum(LengthUnit, data["unit"], "length unit"),
        )
    if "sensor" in data:
        return SensorRead(_enum(SensorKind, data["sensor"], "sensor"))
    if "call" in data:
        return FunctionCall(str(data["call"]), tuple(expression_from_data(a) for a in data.get("args") or ()))
    if "var" in data:
        return VariableReference(str(data["var"]))
    if "number" in data:
        return NumberLiteral(data["number"])
    if "boolean" in data:
        return BooleanLiteral(bool(data["boolean"]))
    raise MalformedTreeError(f"cannot build an expression from {dict(data)!r}")


def _optional_expression(data: Mapping[str, Any], key: str):
    return expression_from_data(data[key]) if data.get(key) is not None else None


# =============================================================================
# Statements
# =============================================================================

def _declare(data):
    return VariableDeclaration(
        str(_require(data, "name", "declaration")),
        _enum(VariableType, data.get("type"), "variable type", required=False),
        _optional_expression(data, "value"),
    )


def _assign(data):
    return Assignment(
        str(_require(data, "target", "assignment")),
        expression_from_data(_require(data, "value", "assignment")),
    )


def _loop(data):
    return Loop(
        expression_from_data(_require(data, "condition", "loop")),
        block_from_data(data.get("body")),
    )


def _if(data):
    return Condition(
        expression_from_data(_require(data, "condition", "condition")),
        block_from_data(data.get("then")),
        block_from_data(data.get("else")),
    )


def _move(data):
    return Movement(
        _enum(Direction, data.get("direction"), "direction"),
        expression_from_data(_require(data, "distance", "movement")),
        _enum(LengthUnit, data.get("unit", "MM"), "length unit"),
    )


def _rotate(data):
    return Rotation(
        _enum(RotationDirection, data.get("direction"), "rotation direction"),
        expression_from_data(_require(data, "angle", "rotation")),
    )


def _speed(data):
    return SetSpeed(
        expression_from_data(_require(data, "value", "speed change")),
        _enum(SpeedUnit, data.get("unit", "MM_PER_SEC"), "speed unit"),
    )


def _call(data):
    return FunctionCall(
        str(_require(data, "name", "call")),
        tuple(expression_from_data(a) for a in data.get("args") or ()),
    )


def _return(data):
    return ReturnStatement(_optional_expression(data, "value"))


_STATEMENT_BUILDERS: Dict[str, Callable[[Mapping[str, Any]], Statement]] = {
    "declare": _declare,
    "assign": _assign,
    "loop": _loop,
    "if": _if,
    "move": _move,
    "rotate": _rotate,
    "speed": _speed,
    "call": _call,
    "return": _return,
}


def statement_from_data(data: Any) -> Statement:
    """Build a statement node from a mapping with a `kind` key."""
    if not isinstance(data, Mapping):
        raise MalformedTreeError(f"statement must be a mapping, got {data!r}")
    kind = data.get("kind")
    builder = _STATEMENT_BUILDERS.get(kind)
    if builder is None:
        choices = ", ".join(sorted(_STATEMENT_BUILDERS))
        raise MalformedTreeError(f"unknown statement kind {kind!r} (expected one of: {choices})")
    return builder(data)


def block_from_data(data: Any) -> tuple:
    if data is None:
        return ()
    if not isinstance(data, list):
        raise MalformedTreeError(f"block must be a list of statements, got {data!r}")
    return tuple(statement_from_data(item) for item in data)


# =============================================================================
# Program
# =============================================================================

def _parameter(data: Any) -> Parameter:
    if not isinstance(data, Mapping):
        raise MalformedTreeError(f"parameter must be a mapping, got {data!r}")
    return Parameter(
        str(_require(data, "name", "parameter")),
        _enum(VariableType, data.get("type"), "parameter type"),
    )


def function_from_data(data: Any) -> Function:
    if not isinstance(data, Mapping):
        raise MalformedTreeError(f"function must be a mapping, got {data!r}")
    return Function(
        str(_require(data, "name", "function")),
        tuple(_parameter(p) for p in data.get("parameters") or ()),
        _enum(ReturnType, data.get("returns", "void"), "return type"),
        block_from_data(data.get("body")),
    )


def program_from_dict(data: Mapping[str, Any]) -> Program:
    """
    Build a Program Tree from a document mapping.

    `entry` is either a list of statements or a mapping with a `body` list.
    A document without `entry` yields a program without an entry function,
    which the validator reports.

    Raises:
        MalformedTreeError: if the document cannot be turned into a tree
    """
    if not isinstance(data, Mapping):
        raise MalformedTreeError("program document must be a mapping")

    functions = tuple(function_from_data(f) for f in data.get("functions") or ())

    entry = None
    raw_entry = data.get("entry")
    if isinstance(raw_entry, Mapping):
        entry = Function(None, (), ReturnType.VOID, block_from_data(raw_entry.get("body")))
    elif raw_entry is not None:
        entry = Function(None, (), ReturnType.VOID, block_from_data(raw_entry))

    return Program(functions, entry)


def load_program(path: Union[str, Path]) -> Program:
    """Load a program document from a .yaml, .yml or .json file."""
    path = Path(path)
    text = path.read_text(encoding="utf-8")
    if path.suffix.lower() == ".json":
        try:
            data = json.loads(text)
        except json.JSONDecodeError as e:
            raise MalformedTreeError(f"{path}: invalid JSON: {e}")
    else:
        try:
            data = yaml.safe_load(text)
        except yaml.YAMLError as e:
            raise MalformedTreeError(f"{path}: invalid YAML: {e}")
    return program_from_dict(data or {})

