"""
Kestrel runtime values
Immutable value variants, hash keys and truthiness.
Values are never mutated after construction, so sharing one is the same as copying it
"""

from typing import Any, Callable, ClassVar, Dict, List, Optional, Tuple
from dataclasses import dataclass, field
from enum import Enum

from syntax import BlockStatement


# ============================================================================
# DATA STRUCTURES
# ============================================================================

class Value:
  """Base class for every runtime value"""
  type_name: ClassVar[str] = "Value"

  def inspect(self) -> str:
    """Representation shown by the REPL"""
    raise NotImplementedError

  def display(self) -> str:
    """Representation written by puts and to_string"""
    return self.inspect()


@dataclass(frozen=True)
class Integer(Value):
  type_name: ClassVar[str] = "Integer"
  value: int

  def inspect(self) -> str:
    return str(self.value)


@dataclass(frozen=True)
class Boolean(Value):
  type_name: ClassVar[str] = "Boolean"
  value: bool

  def inspect(self) -> str:
    return "true" if self.value else "false"


@dataclass(frozen=True)
class String(Value):
  type_name: ClassVar[str] = "String"
  value: str

  def inspect(self) -> str:
    return f'"{self.value}"'

  def display(self) -> str:
    return self.value


@dataclass(frozen=True)
class Null(Value):
  type_name: ClassVar[str] = "Null"

  def inspect(self) -> str:
    return "null"


@dataclass(frozen=True)
class Array(Value):
  type_name: ClassVar[str] = "Array"
  elements: Tuple[Value, ...] = ()

  def inspect(self) -> str:
    return "[" + ", ".join(elem.inspect() for elem in self.elements) + "]"


@dataclass(frozen=True)
class HashKey:
  """Identity of a hashable value; the type name keeps 1 and true apart"""
  type_name: str
  value: Any


@dataclass(frozen=True)
class Hash(Value):
  """Maps each HashKey to the original (key, value) pair, in insertion order"""
  type_name: ClassVar[str] = "Hash"
  pairs: Dict[HashKey, Tuple[Value, Value]] = field(default_factory=dict)

  def inspect(self) -> str:
    items = (f"{key.inspect()}: {value.inspect()}" for key, value in self.pairs.values())
    return "{" + ", ".join(items) + "}"


@dataclass(frozen=True, eq=False)
class Function(Value):
  """User function closing over the environment it was defined in"""
  type_name: ClassVar[str] = "Function"
  parameters: Tuple[str, ...]
  body: BlockStatement
  env: Any

  def signature(self) -> str:
    return f"fn({', '.join(self.parameters)})"

  def inspect(self) -> str:
    return f"{self.signature()} {{ {self.body} }}"


@dataclass(frozen=True, eq=False)
class Builtin(Value):
  type_name: ClassVar[str] = "Builtin"
  name: str
  fn: Callable[[List[Value]], Value]

  def inspect(self) -> str:
    return "builtin function"


class ErrorKind(Enum):
  TYPE_MISMATCH = "type mismatch"
  UNKNOWN_OPERATOR = "unknown operator"
  UNBOUND_IDENTIFIER = "unbound identifier"
  UNBOUND_ASSIGNMENT = "unbound assignment"
  NOT_CALLABLE = "not callable"
  UNHASHABLE_KEY = "unhashable key"
  ILLEGAL_CONTROL_FLOW = "illegal control flow"
  BUILTIN_ARGUMENT = "builtin argument"
  NUMERIC = "numeric"
  INDEX = "index"
  ARITY = "arity"
  RUNTIME = "runtime"


@dataclass(frozen=True)
class Error(Value):
  type_name: ClassVar[str] = "Error"
  message: str
  kind: ErrorKind = ErrorKind.RUNTIME

  def inspect(self) -> str:
    return f"error: {self.message}"


# Control markers: only the construct that licenses them may consume them

@dataclass(frozen=True)
class ReturnSignal(Value):
  type_name: ClassVar[str] = "ReturnSignal"
  value: Value

  def inspect(self) -> str:
    return self.value.inspect()


@dataclass(frozen=True)
class BreakSignal(Value):
  type_name: ClassVar[str] = "BreakSignal"

  def inspect(self) -> str:
    return "break"


@dataclass(frozen=True)
class ContinueSignal(Value):
  type_name: ClassVar[str] = "ContinueSignal"

  def inspect(self) -> str:
    return "continue"


NULL = Null()
TRUE = Boolean(True)
FALSE = Boolean(False)
BREAK = BreakSignal()
CONTINUE = ContinueSignal()


# ============================================================================
# VALUE OPERATIONS
# ============================================================================

def native_bool_to_boolean(value: bool) -> Boolean:
  """Map a host bool onto the shared Boolean singletons"""
  return TRUE if value else FALSE


def hash_key(value: Value) -> Optional[HashKey]:
  """Return the HashKey for an Integer, Boolean or String, None otherwise"""
  if isinstance(value, (Integer, Boolean, String)):
    return HashKey(value.type_name, value.value)
  return None


def is_truthy(value: Value) -> bool:
  """false and null are falsy, everything else (0, "", []) is truthy"""
  if isinstance(value, Null):
    return False
  if isinstance(value, Boolean):
    return value.value
  return True


def make_hash(items: List[Tuple[Value, Value]]) -> Hash:
  """Build a Hash from hashable (key, value) pairs; later keys overwrite earlier ones"""
  pairs: Dict[HashKey, Tuple[Value, Value]] = {}
  for key, value in items:
    pairs[hash_key(key)] = (key, value)
  return Hash(pairs)
