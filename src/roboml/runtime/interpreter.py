"""
Tree-walking evaluator for RoboML programs.

Executes a Program Tree against a fresh kinematic scene and returns the
scene with the robot's trajectory. Each executed movement or rotation
advances the simulated clock and appends exactly one snapshot.
"""

import logging
import math
from dataclasses import dataclass, field
from types import MappingProxyType
from typing import Callable, List, Mapping, Optional, Sequence

from ..ast import (
    Program, Function, Statement,
    VariableDeclaration, Assignment, Loop, Condition,
    Movement, Rotation, SetSpeed, FunctionCall, ReturnStatement,
    Expression, NumberLiteral, BooleanLiteral, VariableReference,
    ArithmeticExpression, ComparisonExpression, UnaryExpression,
    UnitExpression, SensorRead,
    ArithmeticOperator, ComparisonOperator, UnaryOperator,
    Direction, RotationDirection, SensorKind, VariableType,
)
from ..config import SimulationConfig
from ..errors import (
    Diagnostic, EvaluationError, BudgetExceededError, MalformedTreeError,
    UnresolvedFunctionError,
)
from ..units import to_millimetres, to_mm_per_second, to_radians
from .budget import CancellationToken, ExecutionBudget
from .context import ExecutionContext, RuntimeValue
from .scene import Scene, Vector, base_scene
from .sensors import read_distance, read_timestamp

logger = logging.getLogger(__name__)

ENTRY_FRAME = "<entry>"

# Heading offset of each movement direction; clockwise is positive
_DIRECTION_OFFSETS = {
    Direction.FORWARD: 0.0,
    Direction.BACKWARD: math.pi,
    Direction.RIGHT: math.pi / 2.0,
    Direction.LEFT: -math.pi / 2.0,
}

_ROTATION_SIGNS = {
    RotationDirection.CLOCK: 1.0,
    RotationDirection.COUNTERCLOCK: -1.0,
}


@dataclass
class ExecutionResult:
    """Outcome of one run: a scene on success, the failure otherwise."""
    success: bool
    scene: Optional[Scene] = None
    error: Optional[Exception] = None
    diagnostics: List[Diagnostic] = field(default_factory=list)

    @property
    def error_message(self) -> Optional[str]:
        if self.error is not None:
            return str(self.error)
        if self.diagnostics:
            return "; ".join(d.format() for d in self.diagnostics if d.is_error)
        return None

    def to_json(self) -> dict:
        if self.success:
            return {"success": True, "scene": self.scene.to_json()}
        return {
            "success": False,
            "message": self.error_message,
            "diagnostics": [d.to_json() for d in self.diagnostics],
        }


class Evaluator:
    """
    Tree-walking evaluator.

    An instance owns the state of a single run at a time: the frame stack,
    the read-only function registry, the current speed and the scene being
    built. Use one instance per concurrent run.
    """

    def __init__(
        self,
        config: Optional[SimulationConfig] = None,
        token: Optional[CancellationToken] = None,
        on_checkpoint: Optional[Callable[[int], None]] = None,
    ):
        self.config = config or SimulationConfig()
        self.token = token
        self.on_checkpoint = on_checkpoint

        self.functions: Mapping[str, Function] = MappingProxyType({})
        self.context = ExecutionContext()
        self.budget: Optional[ExecutionBudget] = None
        self.scene: Optional[Scene] = None
        self.speed = self.config.initial_speed

    def evaluate(self, program: Program) -> Scene:
        """
        Execute the program's entry function and return the finished scene.

        Raises:
            EvaluationError: on an undeclared name, an unresolved call, an
                exceeded budget or cancellation. No partial scene is kept.
            MalformedTreeError: if the tree lacks a required part.
        """
        if program.entry is None:
            raise MalformedTreeError("program has no entry function", program)

        config = self.config
        self.functions = MappingProxyType(program.function_table())
        self.context = ExecutionContext()
        self.speed = config.initial_speed
        self.scene = base_scene(
            arena_size=config.arena_size,
            robot_size=config.robot_size,
            speed=self.speed,
            entities=config.entities,
        )
        self.budget = ExecutionBudget(
            max_iterations=config.max_iterations,
            max_duration=config.max_duration,
            checkpoint_interval=config.checkpoint_interval,
            token=self.token,
            on_checkpoint=self.on_checkpoint,
        )
        self.budget.start()

        logger.info("evaluation started (%d function(s))", len(self.functions))
        try:
            if self.token is not None and self.token.cancelled:
                self.budget.checkpoint()
            with self.context.call_frame(ENTRY_FRAME):
                self._execute_block(program.entry.body)
        except Exception as e:
            logger.warning("evaluation aborted: %s", e)
            self.scene = None
            raise

        scene = self.scene
        logger.info("evaluation finished: t=%.3fs, %d snapshot(s), %d loop iteration(s)",
                    scene.time, len(scene.snapshots), self.budget.iterations)
        return scene

    # =========================================================================
    # Statements
    # =========================================================================

    def _execute_block(self, statements: Sequence[Statement]) -> None:
        frame = self.context.current
        for stmt in statements:
            self._execute_statement(stmt)
            if frame.returned:
                return

    def _execute_statement(self, stmt: Statement) -> None:
        if isinstance(stmt, VariableDeclaration):
            self._execute_declaration(stmt)
        elif isinstance(stmt, Assignment):
            self.context.assign(stmt.target, self._evaluate(stmt.value))
        elif isinstance(stmt, Loop):
            self._execute_loop(stmt)
        elif isinstance(stmt, Condition):
            if self._as_bool(self._evaluate(stmt.condition), "condition"):
                self._execute_block(stmt.then_body)
            else:
                self._execute_block(stmt.else_body)
        elif isinstance(stmt, Movement):
            self._execute_movement(stmt)
        elif isinstance(stmt, Rotation):
            self._execute_rotation(stmt)
        elif isinstance(stmt, SetSpeed):
            self._execute_set_speed(stmt)
        elif isinstance(stmt, FunctionCall):
            self._call(stmt)
        elif isinstance(stmt, ReturnStatement):
            value = self._evaluate(stmt.value) if stmt.value is not None else None
            self.context.current.signal_return(value)
        else:
            raise MalformedTreeError(f"Unknown statement type: {type(stmt).__name__}", stmt)

    def _execute_declaration(self, decl: VariableDeclaration) -> None:
        if decl.initializer is not None:
            value = self._evaluate(decl.initializer)
        elif decl.type is VariableType.BOOLEAN:
            value = False
        else:
            value = 0.0
        self.context.declare(decl.name, value)

    def _execute_loop(self, loop: Loop) -> None:
        frame = self.context.current
        while self._as_bool(self._evaluate(loop.condition), "loop condition"):
            self.budget.tick()
            self._execute_block(loop.body)
            if frame.returned:
                return

    def _execute_movement(self, move: Movement) -> None:
        if move.direction is None or move.unit is None:
            raise MalformedTreeError("movement without direction or unit", move)
        distance = to_millimetres(self._as_number(self._evaluate(move.distance), "distance"), move.unit)
        if self.speed <= 0:
            raise EvaluationError(f"cannot move at non-positive speed {self.speed} mm/s")

        scene = self.scene
        heading = scene.robot.heading + _DIRECTION_OFFSETS[move.direction]
        scene.advance(abs(distance) / self.speed)
        scene.robot.translate(Vector.from_angle(heading, distance))
        snap = scene.record()
        logger.debug("move %s %.3fmm -> (%.3f, %.3f) at t=%.3f",
                     move.direction.name, distance, snap.position.x, snap.position.y, snap.time)

    def _execute_rotation(self, rot: Rotation) -> None:
        if rot.direction is None:
            raise MalformedTreeError("rotation without direction", rot)
        angle = to_radians(self._as_number(self._evaluate(rot.angle), "angle"))

        scene = self.scene
        scene.advance(abs(angle) / self.config.angular_rate)
        scene.robot.turn(_ROTATION_SIGNS[rot.direction] * angle)
        snap = scene.record()
        logger.debug("rotate %s %.4frad -> heading %.4f at t=%.3f",
                     rot.direction.name, angle, snap.heading, snap.time)

    def _execute_set_speed(self, cmd: SetSpeed) -> None:
        if cmd.unit is None:
            raise MalformedTreeError("speed change without unit", cmd)
        self.speed = to_mm_per_second(self._as_number(self._evaluate(cmd.speed), "speed"), cmd.unit)
        self.scene.robot.speed = self.speed
        logger.debug("speed set to %.3f mm/s", self.speed)

    def _call(self, call: FunctionCall) -> Optional[RuntimeValue]:
        """Evaluate a call; arguments are evaluated in the caller's frame first."""
        func = self.functions.get(call.name)
        if func is None:
            raise UnresolvedFunctionError(call.name)
        if len(call.arguments) != len(func.parameters):
            raise EvaluationError(
                f"Function '{call.name}' expects {len(func.parameters)} argument(s), "
                f"got {len(call.arguments)}"
            )

        args = [self._evaluate(arg) for arg in call.arguments]

        # The entry frame does not count towards the depth limit
        if self.context.depth > self.config.max_call_depth:
            raise BudgetExceededError(
                "max call depth", self.budget.iterations, self.budget.elapsed,
                self.config.max_call_depth,
            )

        bindings = {param.name: value for param, value in zip(func.parameters, args)}
        with self.context.call_frame(func.name, bindings) as frame:
            self._execute_block(func.body)
            return frame.return_value if frame.returned else None

    # =========================================================================
    # Expressions
    # =========================================================================

    def _evaluate(self, expr: Expression) -> RuntimeValue:
        """Evaluate an expression to a float or a bool."""
        if isinstance(expr, NumberLiteral):
            return float(expr.value)
        elif isinstance(expr, BooleanLiteral):
            return bool(expr.value)
        elif isinstance(expr, VariableReference):
            return self.context.lookup(expr.name)
        elif isinstance(expr, ArithmeticExpression):
            return self._eval_arithmetic(expr)
        elif isinstance(expr, ComparisonExpression):
            return self._eval_comparison(expr)
        elif isinstance(expr, UnaryExpression):
            return self._eval_unary(expr)
        elif isinstance(expr, UnitExpression):
            return to_millimetres(self._as_number(self._evaluate(expr.value), "unit value"), expr.unit)
        elif isinstance(expr, SensorRead):
            if expr.sensor is SensorKind.DISTANCE:
                return read_distance(self.scene, self.config.sensor_max_range)
            return read_timestamp(self.scene)
        elif isinstance(expr, FunctionCall):
            value = self._call(expr)
            if value is None:
                raise EvaluationError(f"Function '{expr.name}' did not return a value")
            return value
        elif expr is None:
            raise MalformedTreeError("missing expression")
        else:
            raise MalformedTreeError(f"Unknown expression type: {type(expr).__name__}", expr)

    def _eval_arithmetic(self, expr: ArithmeticExpression) -> float:
        left = self._as_number(self._evaluate(expr.left), "left operand")
        right = self._as_number(self._evaluate(expr.right), "right operand")
        op = expr.operator

        if op is ArithmeticOperator.PLUS:
            return left + right
        elif op is ArithmeticOperator.MINUS:
            return left - right
        elif op is ArithmeticOperator.MULTIPLY:
            return left * right
        elif op is ArithmeticOperator.DIVIDE:
            if right == 0:
                raise EvaluationError("Division by zero")
            return left / right
        elif op is ArithmeticOperator.MODULO:
            if right == 0:
                raise EvaluationError("Modulo by zero")
            # Sign follows the dividend, as on the firmware target
            return math.fmod(left, right)
        raise MalformedTreeError(f"Unknown arithmetic operator: {op}", expr)

    def _eval_comparison(self, expr: ComparisonExpression) -> bool:
        left = self._evaluate(expr.left)
        right = self._evaluate(expr.right)
        op = expr.operator

        if op is ComparisonOperator.EQUALS:
            return left == right
        elif op is ComparisonOperator.NOT_EQUALS:
            return left != right
        elif op is ComparisonOperator.LESS:
            return left < right
        elif op is ComparisonOperator.LESS_EQ:
            return left <= right
        elif op is ComparisonOperator.GREATER:
            return left > right
        elif op is ComparisonOperator.GREATER_EQ:
            return left >= right
        raise MalformedTreeError(f"Unknown comparison operator: {op}", expr)

    def _eval_unary(self, expr: UnaryExpression) -> RuntimeValue:
        operand = self._evaluate(expr.operand)
        if expr.operator is UnaryOperator.NEGATE:
            return -self._as_number(operand, "operand")
        elif expr.operator is UnaryOperator.NOT:
            return not self._as_bool(operand, "operand")
        raise MalformedTreeError(f"Unknown unary operator: {expr.operator}", expr)

    @staticmethod
    def _as_number(value: RuntimeValue, what: str) -> float:
        if isinstance(value, bool) or not isinstance(value, (int, float)):
            raise EvaluationError(f"{what} must be a number, got {value!r}")
        return float(value)

    @staticmethod
    def _as_bool(value: RuntimeValue, what: str) -> bool:
        if not isinstance(value, bool):
            raise EvaluationError(f"{what} must be a boolean, got {value!r}")
        return value


def evaluate(
    program: Program,
    config: Optional[SimulationConfig] = None,
    token: Optional[CancellationToken] = None,
) -> Scene:
    """
    Execute a program and return its scene.

    This is a convenience wrapper around Evaluator.evaluate().
    """
    return Evaluator(config, token=token).evaluate(program)


def run(
    program: Program,
    config: Optional[SimulationConfig] = None,
    token: Optional[CancellationToken] = None,
    validate: bool = True,
) -> ExecutionResult:
    """
    Validate and execute a program, reporting failure as a value.

        result = run(program)
        if result.success:
            trajectory = result.scene.snapshots
        else:
            print(f"Error: {result.error_message}")

    Args:
        program: The Program Tree
        config: Simulation settings (defaults if omitted)
        token: Optional cancellation token polled at loop checkpoints
        validate: Run the validator first and refuse to execute on errors

    Returns:
        ExecutionResult with the scene, or the diagnostics / runtime error
    """
    if validate:
        from ..checker import validate as check_program

        check_result = check_program(program)
        if check_result.has_errors:
            return ExecutionResult(success=False, diagnostics=check_result.errors)

    try:
        scene = Evaluator(config, token=token).evaluate(program)
    except EvaluationError as e:
        return ExecutionResult(success=False, error=e)
    return ExecutionResult(success=True, scene=scene)
