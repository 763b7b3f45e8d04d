"""
Kestrel scope chain
"""

from typing import Dict, Optional

from objects import Value
from error_handling import UnboundVariableError


class Environment:
  """A single scope: its own bindings plus a link to the enclosing scope"""

  def __init__(self, outer: Optional['Environment'] = None):
    self.store: Dict[str, Value] = {}
    self.outer = outer

  def get(self, name: str) -> Optional[Value]:
    """Look the name up in this scope, then in the enclosing ones"""
    owner = self._owner(name)
    return owner.store[name] if owner is not None else None

  def set(self, name: str, value: Value) -> Value:
    """Bind in this scope, shadowing any outer binding"""
    self.store[name] = value
    return value

  def contains(self, name: str) -> bool:
    return self._owner(name) is not None

  def update(self, name: str, value: Value) -> Value:
    """Overwrite the binding in whichever scope holds it

    Raises:
      UnboundVariableError if no scope in the chain binds the name
    """
    owner = self._owner(name)
    if owner is None:
      raise UnboundVariableError(name)
    owner.store[name] = value
    return value

  def enclosed(self) -> 'Environment':
    """Create a child scope"""
    return Environment(outer=self)

  def bindings(self) -> Dict[str, Value]:
    """Copy of this scope's own bindings"""
    return dict(self.store)

  def _owner(self, name: str) -> Optional['Environment']:
    env = self
    while env is not None:
      if name in env.store:
        return env
      env = env.outer
    return None

  def __repr__(self) -> str:
    names = ", ".join(self.store)
    return f"Environment([{names}], outer={'yes' if self.outer else 'no'})"
