"""
Runtime value tests for Kestrel
"""

import pytest
from objects import (
  Integer, String, Array, Hash, HashKey, Function, Builtin, Error,
  ErrorKind, ReturnSignal, NULL, TRUE, FALSE, BREAK, CONTINUE,
  hash_key, is_truthy, make_hash, native_bool_to_boolean
)
from syntax import BlockStatement, ExpressionStatement, Identifier
from environment import Environment


class TestHashKeys:
  """Test hash key derivation"""

  def test_equal_strings_share_a_key(self):
    """Test that equal content gives equal keys and hashes"""
    hello1 = String("Hello World")
    hello2 = String("Hello World")
    diff1 = String("My name is johnny")
    diff2 = String("My name is johnny")
    assert hash_key(hello1) == hash_key(hello2)
    assert hash(hash_key(hello1)) == hash(hash_key(hello2))
    assert hash_key(diff1) == hash_key(diff2)
    assert hash_key(hello1) != hash_key(diff1)

  def test_types_never_collide(self):
    """Test that 1, true and "1" are distinct keys"""
    keys = {hash_key(Integer(1)), hash_key(TRUE), hash_key(String("1"))}
    assert len(keys) == 3
    assert hash_key(Integer(0)) != hash_key(FALSE)

  @pytest.mark.parametrize("value", [
    NULL,
    Array((Integer(1),)),
    Hash(),
    Builtin("len", lambda args: NULL),
  ])
  def test_unhashable_values(self, value):
    """Test that only integers, booleans and strings are hashable"""
    assert hash_key(value) is None

  def test_make_hash_keeps_insertion_order_and_overwrites(self):
    """Test that later duplicates replace earlier values in place"""
    h = make_hash([
      (String("a"), Integer(1)),
      (String("b"), Integer(2)),
      (String("a"), Integer(3)),
    ])
    assert h.pairs[HashKey("String", "a")] == (String("a"), Integer(3))
    assert h.inspect() == '{"a": 3, "b": 2}'


class TestTruthiness:
  """Test the truthiness rule"""

  @pytest.mark.parametrize("value,expected", [
    (FALSE, False),
    (NULL, False),
    (TRUE, True),
    (Integer(0), True),
    (String(""), True),
    (Array(()), True),
  ])
  def test_is_truthy(self, value, expected):
    assert is_truthy(value) is expected

  def test_boolean_singletons(self):
    assert native_bool_to_boolean(True) is TRUE
    assert native_bool_to_boolean(False) is FALSE


class TestRepresentations:
  """Test inspect and display forms"""

  def test_scalars(self):
    assert Integer(-7).inspect() == "-7"
    assert TRUE.inspect() == "true"
    assert FALSE.inspect() == "false"
    assert NULL.inspect() == "null"

  def test_strings_quote_only_when_inspected(self):
    s = String("hi there")
    assert s.inspect() == '"hi there"'
    assert s.display() == "hi there"

  def test_collections(self):
    array = Array((Integer(1), String("a"), Array(())))
    assert array.inspect() == '[1, "a", []]'
    assert make_hash([(Integer(1), TRUE)]).inspect() == "{1: true}"
    assert Hash().inspect() == "{}"

  def test_functions_and_builtins(self):
    body = BlockStatement((ExpressionStatement(Identifier("x")),))
    fn = Function(("x", "y"), body, Environment())
    assert fn.inspect() == "fn(x, y) { x }"
    assert Builtin("len", lambda args: NULL).inspect() == "builtin function"

  def test_errors_and_markers(self):
    error = Error("identifier not found: x", ErrorKind.UNBOUND_IDENTIFIER)
    assert error.inspect() == "error: identifier not found: x"
    assert error.kind is ErrorKind.UNBOUND_IDENTIFIER
    assert ReturnSignal(Integer(3)).inspect() == "3"
    assert BREAK.type_name == "BreakSignal"
    assert CONTINUE.type_name == "ContinueSignal"


class TestImmutability:
  """Test that values cannot be changed after construction"""

  def test_frozen_values(self):
    with pytest.raises(AttributeError):
      Integer(1).value = 2
    array = Array((Integer(1),))
    with pytest.raises(AttributeError):
      array.elements = ()

  def test_functions_compare_by_identity(self):
    body = BlockStatement(())
    env = Environment()
    assert Function((), body, env) != Function((), body, env)
