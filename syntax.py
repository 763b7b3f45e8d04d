"""
Kestrel abstract syntax tree
Immutable node types produced by the grammar and consumed by the evaluator
"""

from typing import Optional, Tuple
from dataclasses import dataclass


class Node:
    """Base class for every AST node"""

    def __str__(self) -> str:
        raise NotImplementedError


class Statement(Node):
    pass


class Expression(Node):
    pass


# ============================================================================
# EXPRESSIONS
# ============================================================================

@dataclass(frozen=True)
class Identifier(Expression):
    name: str

    def __str__(self) -> str:
        return self.name


@dataclass(frozen=True)
class IntegerLiteral(Expression):
    value: int

    def __str__(self) -> str:
        return str(self.value)


@dataclass(frozen=True)
class BooleanLiteral(Expression):
    value: bool

    def __str__(self) -> str:
        return "true" if self.value else "false"


@dataclass(frozen=True)
class StringLiteral(Expression):
    value: str

    def __str__(self) -> str:
        return f'"{self.value}"'


@dataclass(frozen=True)
class PrefixExpression(Expression):
    operator: str
    right: Expression

    def __str__(self) -> str:
        return f"({self.operator}{self.right})"


@dataclass(frozen=True)
class InfixExpression(Expression):
    left: Expression
    operator: str
    right: Expression

    def __str__(self) -> str:
        return f"({self.left} {self.operator} {self.right})"


@dataclass(frozen=True)
class AssignExpression(Expression):
    """Rebinding of an existing name: name = value"""
    name: str
    value: Expression

    def __str__(self) -> str:
        return f"({self.name} = {self.value})"


@dataclass(frozen=True)
class IfExpression(Expression):
    condition: Expression
    consequence: 'BlockStatement'
    alternative: Optional['BlockStatement'] = None

    def __str__(self) -> str:
        result = f"if {self.condition} {self.consequence}"
        if self.alternative is not None:
            result += f" else {self.alternative}"
        return result


@dataclass(frozen=True)
class FunctionLiteral(Expression):
    parameters: Tuple[str, ...]
    body: 'BlockStatement'

    def __str__(self) -> str:
        return f"fn({', '.join(self.parameters)}) {self.body}"


@dataclass(frozen=True)
class CallExpression(Expression):
    function: Expression
    arguments: Tuple[Expression, ...]

    def __str__(self) -> str:
        args = ", ".join(str(arg) for arg in self.arguments)
        return f"{self.function}({args})"


@dataclass(frozen=True)
class ArrayLiteral(Expression):
    elements: Tuple[Expression, ...]

    def __str__(self) -> str:
        return "[" + ", ".join(str(elem) for elem in self.elements) + "]"


@dataclass(frozen=True)
class IndexExpression(Expression):
    left: Expression
    index: Expression

    def __str__(self) -> str:
        return f"({self.left}[{self.index}])"


@dataclass(frozen=True)
class HashLiteral(Expression):
    """Key/value pairs in source order; duplicates are resolved at runtime"""
    pairs: Tuple[Tuple[Expression, Expression], ...]

    def __str__(self) -> str:
        return "{" + ", ".join(f"{key}: {value}" for key, value in self.pairs) + "}"


# ============================================================================
# STATEMENTS
# ============================================================================

@dataclass(frozen=True)
class LetStatement(Statement):
    name: str
    value: Expression

    def __str__(self) -> str:
        return f"let {self.name} = {self.value};"


@dataclass(frozen=True)
class ReturnStatement(Statement):
    value: Optional[Expression] = None

    def __str__(self) -> str:
        if self.value is None:
            return "return;"
        return f"return {self.value};"


@dataclass(frozen=True)
class ExpressionStatement(Statement):
    expression: Expression

    def __str__(self) -> str:
        return str(self.expression)


@dataclass(frozen=True)
class BlockStatement(Statement):
    statements: Tuple[Statement, ...] = ()

    def __str__(self) -> str:
        return "".join(str(stmt) for stmt in self.statements)


@dataclass(frozen=True)
class WhileStatement(Statement):
    condition: Expression
    body: BlockStatement

    def __str__(self) -> str:
        return f"while {self.condition} {self.body}"


@dataclass(frozen=True)
class BreakStatement(Statement):

    def __str__(self) -> str:
        return "break;"


@dataclass(frozen=True)
class ContinueStatement(Statement):

    def __str__(self) -> str:
        return "continue;"


@dataclass(frozen=True)
class Program(Node):
    statements: Tuple[Statement, ...] = ()

    def __str__(self) -> str:
        return "".join(str(stmt) for stmt in self.statements)
