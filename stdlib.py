"""
Kestrel Standard Library
Built-in functions. Each one takes the evaluated argument list and returns a Value;
misuse is reported as an Error value, never raised
"""

from types import MappingProxyType
from typing import Callable, List, Mapping
import random
import re
import sys

from objects import Value, Integer, String, Array, Builtin, ErrorKind, NULL
from utilities import (
  validate_arity,
  validate_function_args,
  unsupported_argument_error,
  argument_type_error,
  arity_error,
  new_error,
  in_int64_range
)


INTEGER_TEXT = re.compile(r"\s*([+-]?\d+)\s*")


# ============================================================================
# COLLECTION FUNCTIONS
# ============================================================================

def kestrel_len(args: List[Value]) -> Value:
  """Number of characters in a string or elements in an array"""
  error = validate_arity("len", args, 1)
  if error:
    return error
  arg = args[0]
  if isinstance(arg, String):
    return Integer(len(arg.value))
  if isinstance(arg, Array):
    return Integer(len(arg.elements))
  return unsupported_argument_error("len", arg)


def kestrel_first(args: List[Value]) -> Value:
  """First element of an array, null when empty"""
  error = validate_arity("first", args, 1)
  if error:
    return error
  arg = args[0]
  if not isinstance(arg, Array):
    return unsupported_argument_error("first", arg)
  return arg.elements[0] if arg.elements else NULL


def kestrel_last(args: List[Value]) -> Value:
  """Last element of an array, null when empty"""
  error = validate_arity("last", args, 1)
  if error:
    return error
  arg = args[0]
  if not isinstance(arg, Array):
    return unsupported_argument_error("last", arg)
  return arg.elements[-1] if arg.elements else NULL


def kestrel_rest(args: List[Value]) -> Value:
  """All elements but the first as a new array, null when empty"""
  error = validate_arity("rest", args, 1)
  if error:
    return error
  arg = args[0]
  if not isinstance(arg, Array):
    return unsupported_argument_error("rest", arg)
  if not arg.elements:
    return NULL
  return Array(arg.elements[1:])


def kestrel_push(args: List[Value]) -> Value:
  """New array with the value appended; the input array is left untouched"""
  error = validate_arity("push", args, 2)
  if error:
    return error
  array, value = args
  if not isinstance(array, Array):
    return argument_type_error("push", 1, Array.type_name, array)
  return Array(array.elements + (value,))


# ============================================================================
# I/O FUNCTIONS
# ============================================================================

def kestrel_puts(args: List[Value]) -> Value:
  """Print each argument's display form on its own line"""
  if not args:
    return arity_error("puts", "at least 1", 0)
  for arg in args:
    print(arg.display(), file=sys.stdout)
  return NULL


def kestrel_gets(args: List[Value]) -> Value:
  """Read one line from stdin without its line ending; "" at end of input"""
  error = validate_arity("gets", args, 0)
  if error:
    return error
  line = sys.stdin.readline()
  return String(line.rstrip("\r\n"))


# ============================================================================
# CONVERSION AND RANDOM FUNCTIONS
# ============================================================================

def kestrel_rand(args: List[Value]) -> Value:
  """Uniform random integer between the two bounds, inclusive, in either order"""
  error = validate_function_args("rand", args, [Integer, Integer])
  if error:
    return error
  low, high = sorted((args[0].value, args[1].value))
  return Integer(random.randint(low, high))


def kestrel_to_string(args: List[Value]) -> Value:
  error = validate_arity("to_string", args, 1)
  if error:
    return error
  return String(args[0].display())


def kestrel_parse_int(args: List[Value]) -> Value:
  """Parse an optionally signed decimal integer, surrounding whitespace allowed"""
  error = validate_function_args("parse_int", args, [String])
  if error:
    return error
  text = args[0].value
  match = INTEGER_TEXT.fullmatch(text)
  if match:
    value = int(match.group(1))
    if in_int64_range(value):
      return Integer(value)
  return new_error(ErrorKind.NUMERIC, f"could not parse '{text}' as integer")


# ============================================================================
# BUILT-IN FUNCTION REGISTRY
# ============================================================================

def make_builtin_function(name: str, func: Callable[[List[Value]], Value]) -> Builtin:
  """Create a built-in function value"""
  return Builtin(name, func)


BUILTIN_FUNCTIONS: Mapping[str, Builtin] = MappingProxyType({
    # Collections
    "len": make_builtin_function("len", kestrel_len),
    "first": make_builtin_function("first", kestrel_first),
    "last": make_builtin_function("last", kestrel_last),
    "rest": make_builtin_function("rest", kestrel_rest),
    "push": make_builtin_function("push", kestrel_push),

    # I/O
    "puts": make_builtin_function("puts", kestrel_puts),
    "gets": make_builtin_function("gets", kestrel_gets),

    # Conversion and randomness
    "rand": make_builtin_function("rand", kestrel_rand),
    "to_string": make_builtin_function("to_string", kestrel_to_string),
    "parse_int": make_builtin_function("parse_int", kestrel_parse_int),
})


def list_builtin_functions() -> List[str]:
  """List all available built-in functions"""
  return list(BUILTIN_FUNCTIONS.keys())
