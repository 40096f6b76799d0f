"""
Semantic validator for RoboML programs.

Walks the Program Tree and collects diagnostics for type errors,
unresolved names, duplicate declarations and incomplete robot commands.
The tree is never modified, and every condition the validator knows about
is reported as a diagnostic rather than raised.

Rules for a node run before the walk descends into its children, so a
statement's own diagnostics precede those of the expressions inside it.
"""

import logging
from dataclasses import dataclass
from typing import Dict, List, Optional, Sequence

from .ast import (
    AstNode, Program, Function, Parameter,
    Statement, VariableDeclaration, Assignment, Loop, Condition,
    Movement, Rotation, SetSpeed, FunctionCall, ReturnStatement,
    Expression, NumberLiteral, BooleanLiteral, VariableReference,
    ArithmeticExpression, ComparisonExpression, UnaryExpression,
    UnitExpression, SensorRead,
    ReturnType, UnaryOperator,
)
from .errors import Diagnostic, DiagnosticCollector, DslError, ErrorSeverity
from .symbols import Symbol, SymbolKind, SymbolTable
from .types import (
    ExprType, NUMBER, BOOLEAN, VOID, UNKNOWN,
    from_return_type, from_variable_type,
)

logger = logging.getLogger(__name__)


@dataclass
class CheckResult:
    """Result of validating a program."""
    diagnostics: List[Diagnostic]
    has_errors: bool
    has_warnings: bool

    @property
    def errors(self) -> List[Diagnostic]:
        return [d for d in self.diagnostics if d.severity == ErrorSeverity.ERROR]

    @property
    def warnings(self) -> List[Diagnostic]:
        return [d for d in self.diagnostics if d.severity == ErrorSeverity.WARNING]

    def raise_for_errors(self) -> None:
        """Raise DslError carrying the first error, if there is one."""
        errors = self.errors
        if errors:
            raise DslError(errors[0])


class Validator:
    """
    Static checker for RoboML programs.

    Validates:
    - Entry function presence and return type, unique function names
    - Unique parameters, return values matching the declared return type
    - Declarations: naming convention, initializer type, duplicates per block
    - Name resolution for references and assignment targets
    - Boolean conditions, numeric distances/angles/speeds, required units
      and directions
    - Call targets, arity and argument types
    - Operand types of arithmetic, comparison and unary expressions
    """

    def __init__(self):
        self.symbols = SymbolTable()
        self.diagnostics = DiagnosticCollector()
        self._functions: Dict[str, Function] = {}
        self._current_function: Optional[Function] = None

    def check(self, program: Program) -> CheckResult:
        """Validate a complete program."""
        self.symbols = SymbolTable()
        self.diagnostics = DiagnosticCollector()
        self._functions = program.function_table()
        self._current_function = None

        self._check_program(program)

        logger.debug("validation finished: %d error(s), %d warning(s)",
                     self.diagnostics.error_count, self.diagnostics.warning_count)
        return CheckResult(
            diagnostics=list(self.diagnostics.diagnostics),
            has_errors=self.diagnostics.has_errors,
            has_warnings=self.diagnostics.has_warnings,
        )

    # =========================================================================
    # Program/Function Checking
    # =========================================================================

    def _check_program(self, program: Program) -> None:
        if program.entry is None:
            self._error("Program must have an entry function.", program, "E301")
        elif program.entry.return_type is not ReturnType.VOID:
            self._error("Entry function must return VOID.", program.entry, "E302",
                        prop="return_type")

        seen = set()
        for func in program.functions:
            if func.name is None:
                continue
            if func.name in seen:
                self._error(f"Duplicate function '{func.name}'.", func, "E303", prop="name")
            seen.add(func.name)

        for func in program.functions:
            self._check_function(func)
        if program.entry is not None:
            self._check_function(program.entry)

    def _check_function(self, func: Function) -> None:
        self._current_function = func
        label = func.name if func.name is not None else "<entry>"
        self.symbols.push_scope(f"function {label}")

        for param in func.parameters:
            self._define_parameter(param)

        self._check_block(func.body, "function body")

        self.symbols.pop_scope()
        self._current_function = None

    def _define_parameter(self, param: Parameter) -> None:
        symbol = Symbol(
            name=param.name,
            kind=SymbolKind.PARAMETER,
            type=from_variable_type(param.type),
            node=param,
        )
        if not self.symbols.define(symbol):
            self._error(f"Duplicate parameter '{param.name}'.", param, "E304", prop="name")

    # =========================================================================
    # Statement Checking
    # =========================================================================

    def _check_block(self, statements: Sequence[Statement], name: str) -> None:
        self.symbols.push_scope(name)
        for stmt in statements:
            self._check_statement(stmt)
        self.symbols.pop_scope()

    def _check_statement(self, stmt: Statement) -> None:
        if isinstance(stmt, VariableDeclaration):
            self._check_variable_declaration(stmt)
        elif isinstance(stmt, Assignment):
            self._check_assignment(stmt)
        elif isinstance(stmt, Loop):
            self._check_loop(stmt)
        elif isinstance(stmt, Condition):
            self._check_condition(stmt)
        elif isinstance(stmt, Movement):
            self._check_movement(stmt)
        elif isinstance(stmt, Rotation):
            self._check_rotation(stmt)
        elif isinstance(stmt, SetSpeed):
            self._check_set_speed(stmt)
        elif isinstance(stmt, FunctionCall):
            self._check_function_call(stmt)
        elif isinstance(stmt, ReturnStatement):
            self._check_return(stmt)
        else:
            self._warning(f"Unknown statement type: {type(stmt).__name__}", stmt, "W302")

    def _check_variable_declaration(self, decl: VariableDeclaration) -> None:
        if decl.name and decl.name[0].isupper():
            self._warning("Variable names should start lowercase.", decl, "W301", prop="name")

        init_type = self._infer(decl.initializer) if decl.initializer is not None else UNKNOWN
        declared = from_variable_type(decl.type)
        if decl.type is not None and decl.initializer is not None:
            if init_type is not declared and init_type is not UNKNOWN:
                self._error(
                    f"Variable '{decl.name}' declared as '{declared}' but initialized with '{init_type}'.",
                    decl, "E310", prop="initializer",
                )

        duplicate = self.symbols.lookup_local(decl.name) is not None
        if duplicate:
            self._error(f"Variable '{decl.name}' already declared in this scope.",
                        decl, "E311", prop="name")

        if decl.initializer is not None:
            self._check_expression(decl.initializer)

        if not duplicate:
            self.symbols.define(Symbol(
                name=decl.name,
                kind=SymbolKind.VARIABLE,
                type=declared if decl.type is not None else init_type,
                node=decl,
            ))

    def _check_assignment(self, stmt: Assignment) -> None:
        symbol = self.symbols.lookup(stmt.target)
        if symbol is None:
            self._error(f"Variable '{stmt.target}' not declared.", stmt, "E312", prop="target")
        else:
            value_type = self._infer(stmt.value)
            if symbol.type is not UNKNOWN and value_type is not UNKNOWN and value_type is not symbol.type:
                self._error(
                    f"Cannot assign '{value_type}' to variable '{stmt.target}' of type '{symbol.type}'.",
                    stmt, "E313", prop="value",
                )
        self._check_expression(stmt.value)

    def _check_loop(self, loop: Loop) -> None:
        cond_type = self._infer(loop.condition)
        if cond_type not in (BOOLEAN, UNKNOWN):
            self._error(f"Loop condition must be boolean, got '{cond_type}'.",
                        loop, "E320", prop="condition")
        self._check_expression(loop.condition)
        self._check_block(loop.body, "loop body")

    def _check_condition(self, cond: Condition) -> None:
        cond_type = self._infer(cond.condition)
        if cond_type not in (BOOLEAN, UNKNOWN):
            self._error(f"Condition must be boolean, got '{cond_type}'.",
                        cond, "E321", prop="condition")
        self._check_expression(cond.condition)
        self._check_block(cond.then_body, "then block")
        self._check_block(cond.else_body, "else block")

    def _check_movement(self, move: Movement) -> None:
        dist_type = self._infer(move.distance)
        if dist_type not in (NUMBER, UNKNOWN):
            self._error(f"Distance must be numeric, got '{dist_type}'.", move, "E330", prop="distance")
        if move.unit is None:
            self._error("Movement must specify a unit.", move, "E331", prop="unit")
        if move.direction is None:
            self._error("Movement must specify a direction.", move, "E332", prop="direction")
        self._check_expression(move.distance)

    def _check_set_speed(self, cmd: SetSpeed) -> None:
        speed_type = self._infer(cmd.speed)
        if speed_type not in (NUMBER, UNKNOWN):
            self._error(f"Speed must be numeric, got '{speed_type}'.", cmd, "E333", prop="speed")
        if cmd.unit is None:
            self._error("SetSpeed must specify a unit.", cmd, "E334", prop="unit")
        self._check_expression(cmd.speed)

    def _check_rotation(self, rot: Rotation) -> None:
        angle_type = self._infer(rot.angle)
        if angle_type not in (NUMBER, UNKNOWN):
            self._error(f"Rotation angle must be numeric, got '{angle_type}'.", rot, "E335", prop="angle")
        if rot.direction is None:
            self._error("Rotation must specify a direction.", rot, "E336", prop="direction")
        self._check_expression(rot.angle)

    def _check_function_call(self, call: FunctionCall) -> None:
        func = self._functions.get(call.name)
        if func is None:
            self._error(f"Unknown function '{call.name}'.", call, "E340", prop="name")
        elif len(call.arguments) != len(func.parameters):
            self._error(
                f"Function '{func.name}' expects {len(func.parameters)} argument(s), "
                f"got {len(call.arguments)}.",
                call, "E341", prop="arguments",
            )
        else:
            for index, (param, arg) in enumerate(zip(func.parameters, call.arguments)):
                arg_type = self._infer(arg)
                param_type = from_variable_type(param.type)
                if arg_type is not param_type and arg_type is not UNKNOWN:
                    self._error(
                        f"Argument {index + 1} to '{func.name}' should be '{param_type}', got '{arg_type}'.",
                        arg, "E342",
                    )

        for arg in call.arguments:
            self._check_expression(arg)

    def _check_return(self, stmt: ReturnStatement) -> None:
        func = self._current_function
        declared = from_return_type(func.return_type) if func is not None else UNKNOWN

        if declared is VOID:
            if stmt.value is not None:
                self._error("A VOID function cannot return a value.", stmt, "E306", prop="value")
        elif declared is not UNKNOWN:
            if stmt.value is None:
                self._error(f"Function must return a value of type '{declared}'.", stmt, "E307")
            else:
                value_type = self._infer(stmt.value)
                if value_type is not declared and value_type is not UNKNOWN:
                    self._error(
                        f"Return type mismatch: expected '{declared}', got '{value_type}'.",
                        stmt, "E305", prop="value",
                    )

        if stmt.value is not None:
            self._check_expression(stmt.value)

    # =========================================================================
    # Expression Checking
    # =========================================================================

    def _check_expression(self, expr: Optional[Expression]) -> None:
        """Run the rules of an expression node, then of its sub-expressions."""
        if expr is None:
            return

        if isinstance(expr, (NumberLiteral, BooleanLiteral, SensorRead)):
            pass
        elif isinstance(expr, VariableReference):
            if self.symbols.lookup(expr.name) is None:
                self._error(f"Variable '{expr.name}' not declared.", expr, "E312", prop="name")
        elif isinstance(expr, ArithmeticExpression):
            self._check_arithmetic(expr)
        elif isinstance(expr, ComparisonExpression):
            self._check_comparison(expr)
        elif isinstance(expr, UnaryExpression):
            self._check_unary(expr)
        elif isinstance(expr, UnitExpression):
            self._check_unit(expr)
        elif isinstance(expr, FunctionCall):
            self._check_function_call(expr)
        else:
            self._warning(f"Unknown expression type: {type(expr).__name__}", expr, "W303")

    def _check_arithmetic(self, expr: ArithmeticExpression) -> None:
        left_type = self._infer(expr.left)
        right_type = self._infer(expr.right)
        if left_type not in (NUMBER, UNKNOWN):
            self._error(f"Arithmetic operator requires numeric operands, got '{left_type}' on left.",
                        expr, "E350", prop="left")
        if right_type not in (NUMBER, UNKNOWN):
            self._error(f"Arithmetic operator requires numeric operands, got '{right_type}' on right.",
                        expr, "E350", prop="right")
        self._check_expression(expr.left)
        self._check_expression(expr.right)

    def _check_unit(self, expr: UnitExpression) -> None:
        value_type = self._infer(expr.value)
        if value_type not in (NUMBER, UNKNOWN):
            self._error(f"Unit requires a numeric value, got '{value_type}'.",
                        expr, "E354", prop="value")
        self._check_expression(expr.value)

    def _check_comparison(self, expr: ComparisonExpression) -> None:
        left_type = self._infer(expr.left)
        right_type = self._infer(expr.right)
        if not left_type.is_compatible(right_type):
            self._error(
                f"Comparison operator requires compatible types, got '{left_type}' and '{right_type}'.",
                expr, "E351",
            )
        self._check_expression(expr.left)
        self._check_expression(expr.right)

    def _check_unary(self, expr: UnaryExpression) -> None:
        operand_type = self._infer(expr.operand)
        if expr.operator is UnaryOperator.NEGATE:
            if operand_type not in (NUMBER, UNKNOWN):
                self._error(f"Unary minus requires numeric operand, got '{operand_type}'.",
                            expr, "E352", prop="operand")
        elif expr.operator is UnaryOperator.NOT:
            if operand_type not in (BOOLEAN, UNKNOWN):
                self._error(f"Unary NOT requires boolean operand, got '{operand_type}'.",
                            expr, "E353", prop="operand")
        self._check_expression(expr.operand)

    # =========================================================================
    # Type Inference
    # =========================================================================

    def _infer(self, expr: Optional[Expression]) -> ExprType:
        """Infer the type of an expression without reporting anything."""
        if expr is None:
            return UNKNOWN

        if isinstance(expr, (NumberLiteral, SensorRead)):
            return NUMBER
        elif isinstance(expr, BooleanLiteral):
            return BOOLEAN
        elif isinstance(expr, VariableReference):
            symbol = self.symbols.lookup(expr.name)
            return symbol.type if symbol is not None else UNKNOWN
        elif isinstance(expr, ArithmeticExpression):
            left_type = self._infer(expr.left)
            right_type = self._infer(expr.right)
            return NUMBER if left_type is NUMBER and right_type is NUMBER else UNKNOWN
        elif isinstance(expr, ComparisonExpression):
            return BOOLEAN
        elif isinstance(expr, UnaryExpression):
            operand_type = self._infer(expr.operand)
            if expr.operator is UnaryOperator.NOT:
                return BOOLEAN if operand_type is BOOLEAN else UNKNOWN
            return NUMBER if operand_type is NUMBER else UNKNOWN
        elif isinstance(expr, UnitExpression):
            return NUMBER if self._infer(expr.value) is NUMBER else UNKNOWN
        elif isinstance(expr, FunctionCall):
            func = self._functions.get(expr.name)
            if func is None:
                return UNKNOWN
            return from_return_type(func.return_type)
        return UNKNOWN

    # =========================================================================
    # Diagnostics
    # =========================================================================

    def _error(self, message: str, node: AstNode, code: str, prop: Optional[str] = None) -> None:
        """Record an error diagnostic."""
        self.diagnostics.add(Diagnostic(
            code=code,
            message=message,
            severity=ErrorSeverity.ERROR,
            node=node,
            prop=prop,
        ))

    def _warning(self, message: str, node: AstNode, code: str, prop: Optional[str] = None) -> None:
        """Record a warning diagnostic."""
        self.diagnostics.add(Diagnostic(
            code=code,
            message=message,
            severity=ErrorSeverity.WARNING,
            node=node,
            prop=prop,
        ))


def validate(program: Program) -> CheckResult:
    """
    Convenience function to validate a program.

    Args:
        program: The Program Tree handed over by the front end

    Returns:
        CheckResult with all diagnostics, in the order they were found
    """
    return Validator().check(program)
