"""
Utilities module for the Kestrel interpreter
Error value builders, argument validation, integer operator factories and tracing
"""

from typing import Any, Callable, List, Optional, Union
import sys

from objects import (
  Value, Integer, Boolean, Error, ErrorKind, ReturnSignal, BreakSignal,
  ContinueSignal, native_bool_to_boolean
)


INT64_MIN = -(2 ** 63)
INT64_MAX = 2 ** 63 - 1


# ==================== TYPE CHECKING UTILITIES ====================

def is_abrupt(value: Any) -> bool:
  """
  Check whether a result must stop the enclosing evaluation

  Args:
    value: Result of evaluating a node

  Returns:
    True for errors and for return/break/continue markers
  """
  return isinstance(value, (Error, ReturnSignal, BreakSignal, ContinueSignal))


def in_int64_range(value: int) -> bool:
  return INT64_MIN <= value <= INT64_MAX


# ==================== ERROR MESSAGE BUILDERS ====================

def new_error(kind: ErrorKind, message: str) -> Error:
  return Error(message, kind)


def type_mismatch_error(left: Value, operator: str, right: Value) -> Error:
  return new_error(
    ErrorKind.TYPE_MISMATCH,
    f"type mismatch: {left.type_name} {operator} {right.type_name}"
  )


def operation_error(left: Value, operator: str, right: Value) -> Error:
  """
  Generate unknown-operator error for a binary operation

  Args:
    left: Left operand
    operator: Operator symbol
    right: Right operand

  Returns:
    Error value naming both operand types
  """
  return new_error(
    ErrorKind.UNKNOWN_OPERATOR,
    f"unknown operator: {left.type_name} {operator} {right.type_name}"
  )


def arity_error(func_name: str, expected: Union[int, str], got: int) -> Error:
  """
  Generate arity mismatch error for a built-in

  Args:
    func_name: Built-in name
    expected: Expected number of arguments, or a description such as "at least 1"
    got: Actual number of arguments

  Returns:
    Error value with formatted message
  """
  return new_error(
    ErrorKind.BUILTIN_ARGUMENT,
    f"wrong number of arguments to '{func_name}'. got: {got}, want: {expected}"
  )


def unsupported_argument_error(func_name: str, actual: Value) -> Error:
  return new_error(
    ErrorKind.BUILTIN_ARGUMENT,
    f"argument to '{func_name}' not supported, got: {actual.type_name}"
  )


def argument_type_error(func_name: str, position: int, expected: str, actual: Value) -> Error:
  """
  Generate error for one misplaced argument of a built-in

  Args:
    func_name: Built-in name
    position: 1-based argument position
    expected: Expected type name
    actual: Offending argument

  Returns:
    Error value with formatted message
  """
  return new_error(
    ErrorKind.BUILTIN_ARGUMENT,
    f"argument {position} to '{func_name}' must be {expected}, got {actual.type_name}"
  )


# ==================== VALIDATION UTILITIES ====================

def validate_arity(func_name: str, args: List[Value], expected: int) -> Optional[Error]:
  """Return an arity error when len(args) differs from expected"""
  if len(args) != expected:
    return arity_error(func_name, expected, len(args))
  return None


def validate_function_args(
  func_name: str,
  args: List[Value],
  expected_types: List[type]
) -> Optional[Error]:
  """
  Validate function arguments match expected types

  Args:
    func_name: Built-in name for error messages
    args: List of argument values
    expected_types: Value classes, one per position

  Returns:
    The first arity or type error found, None if the arguments are valid
  """
  arity = validate_arity(func_name, args, len(expected_types))
  if arity is not None:
    return arity

  for i, (arg, expected) in enumerate(zip(args, expected_types)):
    if not isinstance(arg, expected):
      return argument_type_error(func_name, i + 1, expected.type_name, arg)
  return None


# ==================== BINARY OPERATION FACTORIES ====================

def truncating_divide(x: int, y: int) -> int:
  """Integer division rounding toward zero"""
  quotient = abs(x) // abs(y)
  return quotient if (x < 0) == (y < 0) else -quotient


def binary_arithmetic_op(
  op: Callable[[int, int], int],
  symbol: str
) -> Callable[[Integer, Integer], Value]:
  """
  Factory for 64-bit integer arithmetic

  Args:
    op: Python operator function (e.g., operator.add)
    symbol: Kestrel operator for error messages

  Returns:
    Function producing an Integer, or an Error on overflow or division by zero

  Examples:
    add = binary_arithmetic_op(operator.add, "+")
    add(Integer(1), Integer(2)) -> Integer(3)
  """
  def arithmetic(x: Integer, y: Integer) -> Value:
    try:
      result = op(x.value, y.value)
    except ZeroDivisionError:
      return new_error(ErrorKind.NUMERIC, f"division by zero: {x.value} {symbol} {y.value}")
    if not in_int64_range(result):
      return new_error(ErrorKind.NUMERIC, f"integer overflow: {x.value} {symbol} {y.value}")
    return Integer(result)

  return arithmetic


def binary_comparison_op(op: Callable[[Any, Any], bool]) -> Callable[[Value, Value], Boolean]:
  """
  Factory for comparisons over same-typed payloads

  Examples:
    lt = binary_comparison_op(operator.lt)
    lt(Integer(1), Integer(2)) -> TRUE
  """
  def comparison(x: Value, y: Value) -> Boolean:
    return native_bool_to_boolean(op(x.value, y.value))

  return comparison


# ==================== TRACING ====================

def debug_print(*args: Any) -> None:
  """Write a trace line to stderr so program output stays clean"""
  print("[DEBUG]", *args, file=sys.stderr)
