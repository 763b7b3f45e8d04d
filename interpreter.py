"""
Kestrel Interpreter
Recursive tree-walking evaluator over syntax.py nodes.
Language errors and control flow travel as values (Error, ReturnSignal,
BreakSignal, ContinueSignal) rather than host exceptions
"""

from typing import Dict, List, Optional, Callable, Tuple
import operator

from syntax import (
  Node, Program, LetStatement, ReturnStatement, ExpressionStatement,
  BlockStatement, WhileStatement, BreakStatement, ContinueStatement,
  Identifier, IntegerLiteral, BooleanLiteral, StringLiteral,
  PrefixExpression, InfixExpression, AssignExpression, IfExpression,
  FunctionLiteral, CallExpression, ArrayLiteral, IndexExpression,
  HashLiteral
)
from objects import (
  Value, Integer, String, Boolean, Array, Hash, Function, Builtin, Error,
  ErrorKind, ReturnSignal, BreakSignal, ContinueSignal, NULL, TRUE, FALSE,
  BREAK, CONTINUE, native_bool_to_boolean, hash_key, is_truthy, make_hash
)
from environment import Environment
from stdlib import BUILTIN_FUNCTIONS
from utilities import (
  new_error,
  type_mismatch_error,
  operation_error,
  binary_arithmetic_op,
  binary_comparison_op,
  truncating_divide,
  is_abrupt,
  debug_print
)
from parsing import create_parser, KestrelParser


# ============================================================================
# OPERATOR TABLES
# ============================================================================

INTEGER_OPERATORS: Dict[str, Callable[[Integer, Integer], Value]] = {
    "+": binary_arithmetic_op(operator.add, "+"),
    "-": binary_arithmetic_op(operator.sub, "-"),
    "*": binary_arithmetic_op(operator.mul, "*"),
    "/": binary_arithmetic_op(truncating_divide, "/"),
    "<": binary_comparison_op(operator.lt),
    ">": binary_comparison_op(operator.gt),
    "==": binary_comparison_op(operator.eq),
    "!=": binary_comparison_op(operator.ne),
}

BOOLEAN_OPERATORS: Dict[str, Callable[[Value, Value], Value]] = {
    "==": binary_comparison_op(operator.eq),
    "!=": binary_comparison_op(operator.ne),
}

STRING_OPERATORS: Dict[str, Callable[[String, String], Value]] = {
    "+": lambda x, y: String(x.value + y.value),
    "==": binary_comparison_op(operator.eq),
    "!=": binary_comparison_op(operator.ne),
}


def illegal_control_flow_error(keyword: str) -> Error:
  return new_error(ErrorKind.ILLEGAL_CONTROL_FLOW, f"{keyword} statement is illegal in current context")


# ============================================================================
# EVALUATION FUNCTIONS
# ============================================================================

def eval_ast(node: Node, env: Environment, debug: bool = False) -> Value:
  """Evaluate any AST node in the given environment"""
  if debug:
    debug_print(f"Evaluating {type(node).__name__}: {node}")

  # Statements
  if isinstance(node, Program):
    return eval_program(node, env, debug)
  elif isinstance(node, ExpressionStatement):
    return eval_ast(node.expression, env, debug)
  elif isinstance(node, LetStatement):
    return eval_let(node, env, debug)
  elif isinstance(node, ReturnStatement):
    return eval_return(node, env, debug)
  elif isinstance(node, BlockStatement):
    return eval_block(node, env, debug)
  elif isinstance(node, WhileStatement):
    return eval_while(node, env, debug)
  elif isinstance(node, BreakStatement):
    return BREAK
  elif isinstance(node, ContinueStatement):
    return CONTINUE

  # Literals
  elif isinstance(node, IntegerLiteral):
    return Integer(node.value)
  elif isinstance(node, BooleanLiteral):
    return native_bool_to_boolean(node.value)
  elif isinstance(node, StringLiteral):
    return String(node.value)
  elif isinstance(node, ArrayLiteral):
    return eval_array_literal(node, env, debug)
  elif isinstance(node, HashLiteral):
    return eval_hash_literal(node, env, debug)
  elif isinstance(node, FunctionLiteral):
    return Function(node.parameters, node.body, env)

  # Expressions
  elif isinstance(node, Identifier):
    return eval_identifier(node, env)
  elif isinstance(node, AssignExpression):
    return eval_assign(node, env, debug)
  elif isinstance(node, PrefixExpression):
    right = eval_ast(node.right, env, debug)
    if is_abrupt(right):
      return right
    return eval_prefix_expression(node.operator, right)
  elif isinstance(node, InfixExpression):
    left = eval_ast(node.left, env, debug)
    if is_abrupt(left):
      return left
    right = eval_ast(node.right, env, debug)
    if is_abrupt(right):
      return right
    return eval_infix_expression(node.operator, left, right)
  elif isinstance(node, IfExpression):
    return eval_if(node, env, debug)
  elif isinstance(node, CallExpression):
    return eval_call(node, env, debug)
  elif isinstance(node, IndexExpression):
    return eval_index(node, env, debug)

  raise TypeError(f"Unknown AST node type: {type(node).__name__}")


def eval_program(program: Program, env: Environment, debug: bool = False) -> Value:
  """Run top-level statements; the program boundary consumes every control marker"""
  result: Value = NULL
  for statement in program.statements:
    result = eval_ast(statement, env, debug)
    if isinstance(result, ReturnSignal):
      return result.value
    if isinstance(result, BreakSignal):
      return illegal_control_flow_error("break")
    if isinstance(result, ContinueSignal):
      return illegal_control_flow_error("continue")
    if isinstance(result, Error):
      return result
  return result


def eval_block(block: BlockStatement, env: Environment, debug: bool = False) -> Value:
  """Run statements in order, handing any error or marker to the caller untouched"""
  result: Value = NULL
  for statement in block.statements:
    result = eval_ast(statement, env, debug)
    if is_abrupt(result):
      return result
  return result


def eval_let(node: LetStatement, env: Environment, debug: bool = False) -> Value:
  value = eval_ast(node.value, env, debug)
  if is_abrupt(value):
    return value
  env.set(node.name, value)
  return NULL


def eval_assign(node: AssignExpression, env: Environment, debug: bool = False) -> Value:
  """Rebind an existing name in the scope that owns it"""
  if not env.contains(node.name):
    return new_error(ErrorKind.UNBOUND_ASSIGNMENT, f"variable {node.name} does not exist yet")
  value = eval_ast(node.value, env, debug)
  if is_abrupt(value):
    return value
  return env.update(node.name, value)


def eval_return(node: ReturnStatement, env: Environment, debug: bool = False) -> Value:
  if node.value is None:
    return ReturnSignal(NULL)
  value = eval_ast(node.value, env, debug)
  if is_abrupt(value):
    return value
  return ReturnSignal(value)


def eval_while(node: WhileStatement, env: Environment, debug: bool = False) -> Value:
  """Loop while the condition holds; every iteration gets its own child scope"""
  while True:
    condition = eval_ast(node.condition, env, debug)
    if is_abrupt(condition):
      return condition
    if not is_truthy(condition):
      return NULL

    result = eval_block(node.body, env.enclosed(), debug)
    if isinstance(result, BreakSignal):
      return NULL
    if isinstance(result, (ReturnSignal, Error)):
      return result
    # ContinueSignal and normal completion both move on to the next iteration


def eval_identifier(node: Identifier, env: Environment) -> Value:
  value = env.get(node.name)
  if value is not None:
    return value
  builtin = BUILTIN_FUNCTIONS.get(node.name)
  if builtin is not None:
    return builtin
  return new_error(ErrorKind.UNBOUND_IDENTIFIER, f"identifier not found: {node.name}")


def eval_expressions(nodes: Tuple[Node, ...], env: Environment, debug: bool = False) -> Tuple[List[Value], Optional[Value]]:
  """Evaluate left to right, stopping at the first error or marker

  Returns:
    (values, abrupt) where abrupt is the stopping result, or None
  """
  values = []
  for node in nodes:
    value = eval_ast(node, env, debug)
    if is_abrupt(value):
      return values, value
    values.append(value)
  return values, None


def eval_array_literal(node: ArrayLiteral, env: Environment, debug: bool = False) -> Value:
  elements, abrupt = eval_expressions(node.elements, env, debug)
  if abrupt is not None:
    return abrupt
  return Array(tuple(elements))


def eval_hash_literal(node: HashLiteral, env: Environment, debug: bool = False) -> Value:
  items = []
  for key_node, value_node in node.pairs:
    key = eval_ast(key_node, env, debug)
    if is_abrupt(key):
      return key
    if hash_key(key) is None:
      return new_error(ErrorKind.UNHASHABLE_KEY, f"unusable as hash key: {key.type_name}")
    value = eval_ast(value_node, env, debug)
    if is_abrupt(value):
      return value
    items.append((key, value))
  return make_hash(items)


def eval_prefix_expression(operator: str, right: Value) -> Value:
  if operator == "!":
    return eval_bang_operator(right)
  if operator == "-":
    return eval_minus_prefix_operator(right)
  return new_error(ErrorKind.UNKNOWN_OPERATOR, f"unknown operator: {operator}{right.type_name}")


def eval_bang_operator(right: Value) -> Value:
  """!false and !null are true, everything else negates to false"""
  if right is NULL or right == FALSE:
    return TRUE
  return FALSE


def eval_minus_prefix_operator(right: Value) -> Value:
  if not isinstance(right, Integer):
    return new_error(ErrorKind.UNKNOWN_OPERATOR, f"unknown operator: -{right.type_name}")
  return INTEGER_OPERATORS["-"](Integer(0), right)


def eval_infix_expression(operator: str, left: Value, right: Value) -> Value:
  """Dispatch on the operand type pair"""
  if type(left) is not type(right):
    return type_mismatch_error(left, operator, right)

  if isinstance(left, Integer):
    table = INTEGER_OPERATORS
  elif isinstance(left, Boolean):
    table = BOOLEAN_OPERATORS
  elif isinstance(left, String):
    table = STRING_OPERATORS
  else:
    table = {}

  op = table.get(operator)
  if op is None:
    return operation_error(left, operator, right)
  return op(left, right)


def eval_if(node: IfExpression, env: Environment, debug: bool = False) -> Value:
  condition = eval_ast(node.condition, env, debug)
  if is_abrupt(condition):
    return condition
  if is_truthy(condition):
    return eval_block(node.consequence, env, debug)
  if node.alternative is not None:
    return eval_block(node.alternative, env, debug)
  return NULL


def eval_call(node: CallExpression, env: Environment, debug: bool = False) -> Value:
  function = eval_ast(node.function, env, debug)
  if is_abrupt(function):
    return function
  args, abrupt = eval_expressions(node.arguments, env, debug)
  if abrupt is not None:
    return abrupt
  return apply_function(function, args, debug)


def apply_function(function: Value, args: List[Value], debug: bool = False) -> Value:
  """Call a user function or built-in with already evaluated arguments"""
  if isinstance(function, Function):
    if len(args) != len(function.parameters):
      return new_error(
        ErrorKind.ARITY,
        f"wrong number of arguments to {function.signature()}. got: {len(args)}, want: {len(function.parameters)}"
      )
    call_env = function.env.enclosed()
    for name, arg in zip(function.parameters, args):
      call_env.set(name, arg)
    if debug:
      debug_print(f"Calling {function.signature()} with {[arg.inspect() for arg in args]}")
    return unwrap_call_result(eval_block(function.body, call_env, debug))

  if isinstance(function, Builtin):
    return function.fn(args)

  return new_error(ErrorKind.NOT_CALLABLE, f"not a function: {function.type_name}")


def unwrap_call_result(result: Value) -> Value:
  """The call boundary consumes return and rejects stray break/continue"""
  if isinstance(result, ReturnSignal):
    return result.value
  if isinstance(result, BreakSignal):
    return illegal_control_flow_error("break")
  if isinstance(result, ContinueSignal):
    return illegal_control_flow_error("continue")
  return result


def eval_index(node: IndexExpression, env: Environment, debug: bool = False) -> Value:
  left = eval_ast(node.left, env, debug)
  if is_abrupt(left):
    return left
  index = eval_ast(node.index, env, debug)
  if is_abrupt(index):
    return index

  if isinstance(left, Array):
    return eval_array_index(left, index)
  if isinstance(left, Hash):
    return eval_hash_index(left, index)
  return new_error(ErrorKind.INDEX, f"index not supported: {left.type_name}")


def eval_array_index(array: Array, index: Value) -> Value:
  if not isinstance(index, Integer):
    return new_error(ErrorKind.INDEX, f"index not supported: {array.type_name}[{index.type_name}]")
  if index.value < 0 or index.value >= len(array.elements):
    return NULL
  return array.elements[index.value]


def eval_hash_index(hash_value: Hash, index: Value) -> Value:
  key = hash_key(index)
  if key is None:
    return new_error(ErrorKind.UNHASHABLE_KEY, f"unusable as hash key: {index.type_name}")
  pair = hash_value.pairs.get(key)
  return pair[1] if pair is not None else NULL


def evaluate(node: Node, env: Environment, debug: bool = False) -> Value:
  """Top-level entry point used for whole programs and single REPL lines"""
  try:
    return eval_ast(node, env, debug)
  except RecursionError:
    return new_error(ErrorKind.RUNTIME, "maximum recursion depth exceeded")


# ============================================================================
# INTERPRETER FACADE
# ============================================================================

class KestrelInterpreter:
  """Parser plus one persistent global environment"""

  def __init__(self, debug: bool = False, parser: Optional[KestrelParser] = None):
    self.debug = debug
    self.parser = parser or create_parser(debug)
    self.global_env = Environment()

  def evaluate(self, node: Node) -> Value:
    return evaluate(node, self.global_env, self.debug)

  def run(self, source: str, filename: str = "<input>") -> Value:
    """Parse and evaluate source text; parse failures raise KestrelParseError"""
    program = self.parser.parse_string(source, filename)
    if self.debug:
      debug_print(f"Parsed {len(program.statements)} statements from {filename}")
    return self.evaluate(program)

  def run_file(self, filepath: str) -> Value:
    program = self.parser.parse_file(filepath)
    return self.evaluate(program)

  def user_bindings(self) -> Dict[str, Value]:
    return self.global_env.bindings()


# ============================================================================
# FACTORY FUNCTIONS
# ============================================================================

def create_interpreter(debug: bool = False) -> KestrelInterpreter:
  """Create a Kestrel interpreter"""
  return KestrelInterpreter(debug=debug)


def create_debug_interpreter() -> KestrelInterpreter:
  """Create a Kestrel interpreter with evaluation tracing"""
  return KestrelInterpreter(debug=True)
