"""
Kestrel Programming Language Parser
Hand-written tokenizer plus a pyparsing grammar that builds syntax.py nodes
"""

from typing import List, Any, Dict, Optional
from dataclasses import dataclass, fields, is_dataclass
import re

from pyparsing import (
    Keyword, Regex, QuotedString, Suppress, Forward, ZeroOrMore, Opt,
    DelimitedList, MatchFirst, StringEnd, ParserElement, ParseResults,
    ParseBaseException, ParseFatalException, infix_notation, one_of,
    OpAssoc, dbl_slash_comment
)

from syntax import (
    Node, Program, LetStatement, ReturnStatement, ExpressionStatement,
    BlockStatement, WhileStatement, BreakStatement, ContinueStatement,
    Identifier, IntegerLiteral, BooleanLiteral, StringLiteral,
    PrefixExpression, InfixExpression, AssignExpression, IfExpression,
    FunctionLiteral, CallExpression, ArrayLiteral, IndexExpression,
    HashLiteral
)
from error_handling import KestrelErrorHandler, KestrelParseError, KestrelTokenizerError
from utilities import INT64_MAX, debug_print

# Enable packrat parsing for performance
ParserElement.enable_packrat()


KEYWORDS: Dict[str, str] = {
    'fn': 'FUNCTION',
    'let': 'LET',
    'true': 'TRUE',
    'false': 'FALSE',
    'if': 'IF',
    'else': 'ELSE',
    'return': 'RETURN',
    'while': 'WHILE',
    'break': 'BREAK',
    'continue': 'CONTINUE',
}


@dataclass(frozen=True)
class SourceSpan:
    """Source location of a token"""
    filename: str
    start_line: int
    start_col: int
    end_line: int
    end_col: int
    text: str = ""

    def __str__(self) -> str:
        if self.start_line == self.end_line:
            return f"{self.filename}:{self.start_line}:{self.start_col}-{self.end_col}"
        return f"{self.filename}:{self.start_line}:{self.start_col}-{self.end_line}:{self.end_col}"


@dataclass(frozen=True)
class Token:
    """Kestrel token with source information"""
    type: str
    value: Any
    span: SourceSpan

    def __str__(self) -> str:
        return f"{self.type}({self.value})"


class KestrelTokenizer:
    """Kestrel tokenizer used by the REPL and the --tokens view"""

    def __init__(self, filename: str = "<input>"):
        self.filename = filename
        self._setup_token_patterns()

    def _setup_token_patterns(self):
        """Setup all token patterns for Kestrel"""

        # String literals with escape sequences, single line only
        self.string_pattern = re.compile(r'"(?:[^"\\\n]|\\.)*"')

        self.integer_pattern = re.compile(r'\d+')

        self.identifier_pattern = re.compile(r'[A-Za-z_][A-Za-z0-9_]*')

        # Longest operators first so '==' wins over '='
        self.operators = {
            '==': 'EQ',
            '!=': 'NOT_EQ',
            '=': 'ASSIGN',
            '+': 'PLUS',
            '-': 'MINUS',
            '!': 'BANG',
            '*': 'ASTERISK',
            '/': 'SLASH',
            '<': 'LT',
            '>': 'GT',
        }
        operators_sorted = sorted(self.operators, key=len, reverse=True)
        self.operator_pattern = re.compile('|'.join(re.escape(op) for op in operators_sorted))

        self.delimiters = {
            ',': 'COMMA',
            ':': 'COLON',
            ';': 'SEMICOLON',
            '(': 'LPAREN',
            ')': 'RPAREN',
            '{': 'LBRACE',
            '}': 'RBRACE',
            '[': 'LBRACKET',
            ']': 'RBRACKET',
        }

    def tokenize(self, text: str) -> List[Token]:
        """Tokenize Kestrel source code, ending with an EOF token"""
        tokens = []
        lines = text.split('\n')

        for line_num, line in enumerate(lines, 1):
            pos = 0
            while pos < len(line):
                if line[pos].isspace():
                    pos += 1
                    continue

                if line.startswith('//', pos):
                    break

                token = self._match_token_at_position(line, pos, line_num)
                if token:
                    tokens.append(token)
                    pos += len(token.span.text)
                else:
                    char = line[pos]
                    span = SourceSpan(
                        self.filename, line_num, pos + 1, line_num, pos + 2, char
                    )
                    raise KestrelTokenizerError(f"Unknown character '{char}'", span)

        last_line = len(lines)
        last_col = len(lines[-1]) + 1
        tokens.append(Token("EOF", "", SourceSpan(self.filename, last_line, last_col, last_line, last_col)))
        return tokens

    def _match_token_at_position(self, line: str, pos: int, line_num: int) -> Optional[Token]:
        """Match a token at a specific position using priority order"""

        def span_for(value: str) -> SourceSpan:
            return SourceSpan(self.filename, line_num, pos + 1, line_num, pos + len(value) + 1, value)

        # Priority 1: String literals
        if line[pos] == '"':
            string_match = self.string_pattern.match(line, pos)
            if not string_match:
                raise KestrelTokenizerError("Unterminated string literal", span_for(line[pos:]))
            value = string_match.group(0)
            return Token("STRING", self._process_string_escapes(value[1:-1]), span_for(value))

        # Priority 2: Integers
        int_match = self.integer_pattern.match(line, pos)
        if int_match:
            value = int_match.group(0)
            return Token("INT", int(value), span_for(value))

        # Priority 3: Operators (longest match first)
        op_match = self.operator_pattern.match(line, pos)
        if op_match:
            value = op_match.group(0)
            return Token(self.operators[value], value, span_for(value))

        # Priority 4: Delimiters
        if line[pos] in self.delimiters:
            value = line[pos]
            return Token(self.delimiters[value], value, span_for(value))

        # Priority 5: Identifiers and keywords
        id_match = self.identifier_pattern.match(line, pos)
        if id_match:
            value = id_match.group(0)
            return Token(KEYWORDS.get(value, "IDENT"), value, span_for(value))

        return None

    def _process_string_escapes(self, s: str) -> str:
        """Process escape sequences in strings"""
        escape_map = {'n': '\n', 't': '\t', 'r': '\r', '\\': '\\', '"': '"'}

        result = []
        i = 0
        while i < len(s):
            if s[i] == '\\' and i + 1 < len(s) and s[i + 1] in escape_map:
                result.append(escape_map[s[i + 1]])
                i += 2
            else:
                result.append(s[i])
                i += 1

        return ''.join(result)


# Postfix suffixes are collected as markers and folded onto their primary
@dataclass(frozen=True)
class _CallArgs:
    arguments: tuple


@dataclass(frozen=True)
class _IndexArg:
    index: Any


def _fold_postfix(tokens: ParseResults) -> Node:
    node = tokens[0]
    for suffix in tokens[1:]:
        if isinstance(suffix, _CallArgs):
            node = CallExpression(node, suffix.arguments)
        else:
            node = IndexExpression(node, suffix.index)
    return node


def _make_prefix(tokens: ParseResults) -> Node:
    operator, operand = tokens[0]
    return PrefixExpression(operator, operand)


def _make_infix(tokens: ParseResults) -> Node:
    items = tokens[0]
    node = items[0]
    for i in range(1, len(items), 2):
        node = InfixExpression(node, items[i], items[i + 1])
    return node


def _make_integer(s: str, loc: int, tokens: ParseResults) -> IntegerLiteral:
    value = int(tokens[0])
    if value > INT64_MAX:
        raise ParseFatalException(s, loc, f"could not parse {tokens[0]} as integer")
    return IntegerLiteral(value)


def _make_if(tokens: ParseResults) -> IfExpression:
    alternative = tokens[2] if len(tokens) > 2 else None
    return IfExpression(tokens[0], tokens[1], alternative)


def _make_function(tokens: ParseResults) -> FunctionLiteral:
    return FunctionLiteral(tuple(tokens[:-1]), tokens[-1])


class KestrelGrammar:
    """Kestrel grammar definition using pyparsing"""

    def __init__(self, debug: bool = False):
        self.debug = debug
        self._setup_grammar()

    def _setup_grammar(self):
        """Setup the Kestrel grammar; parse actions build AST nodes directly"""

        expression = Forward()
        statement = Forward()

        LPAREN, RPAREN, LBRACE, RBRACE, LBRACKET, RBRACKET, COMMA, COLON, SEMI = map(Suppress, "(){}[],:;")
        ASSIGN = Suppress(Regex(r"=(?!=)").set_name("'='"))

        FN, LET, IF, ELSE, RETURN, WHILE = map(
            lambda kw: Suppress(Keyword(kw)), ("fn", "let", "if", "else", "return", "while")
        )
        TRUE, FALSE, BREAK, CONTINUE = map(Keyword, ("true", "false", "break", "continue"))

        reserved = MatchFirst([Keyword(kw) for kw in KEYWORDS])

        # Identifiers: raw names for bindings, Identifier nodes for expressions
        name = (~reserved + Regex(r"[A-Za-z_][A-Za-z0-9_]*")).set_name("identifier")
        identifier = name.copy().set_parse_action(lambda t: Identifier(t[0]))

        # Literals
        integer = Regex(r"\d+").set_name("integer").set_parse_action(_make_integer)
        string = QuotedString('"', esc_char='\\').set_name("string").set_parse_action(
            lambda t: StringLiteral(t[0])
        )
        boolean = (TRUE | FALSE).set_parse_action(lambda t: BooleanLiteral(t[0] == "true"))

        # Blocks commit once the opening brace is seen
        block = (LBRACE + ZeroOrMore(statement) - RBRACE).set_name("block").set_parse_action(
            lambda t: BlockStatement(tuple(t))
        )

        if_expr = (
            IF - LPAREN + expression + RPAREN + block + Opt(ELSE - block)
        ).set_parse_action(_make_if)

        fn_literal = (
            FN - LPAREN + Opt(DelimitedList(name)) + RPAREN + block
        ).set_parse_action(_make_function)

        array = (
            LBRACKET + Opt(DelimitedList(expression)) - RBRACKET
        ).set_parse_action(lambda t: ArrayLiteral(tuple(t)))

        pair = (expression + COLON + expression).set_parse_action(lambda t: (t[0], t[1]))
        hash_literal = (
            LBRACE + Opt(DelimitedList(pair)) - RBRACE
        ).set_parse_action(lambda t: HashLiteral(tuple(t)))

        grouped = LPAREN + expression + RPAREN

        primary = (
            if_expr | fn_literal | boolean | integer | string |
            identifier | array | hash_literal | grouped
        )

        # Calls and indexing bind tighter than any operator
        call_args = (LPAREN + Opt(DelimitedList(expression)) - RPAREN).set_parse_action(
            lambda t: _CallArgs(tuple(t))
        )
        index_arg = (LBRACKET + expression - RBRACKET).set_parse_action(lambda t: _IndexArg(t[0]))
        postfix = (primary + ZeroOrMore(call_args | index_arg)).set_parse_action(_fold_postfix)

        # Highest to lowest: prefix ! -, * /, + -, < >, == !=
        infix = infix_notation(postfix, [
            (one_of("! -"), 1, OpAssoc.RIGHT, _make_prefix),
            (one_of("* /"), 2, OpAssoc.LEFT, _make_infix),
            (one_of("+ -"), 2, OpAssoc.LEFT, _make_infix),
            (one_of("< >"), 2, OpAssoc.LEFT, _make_infix),
            (one_of("== !="), 2, OpAssoc.LEFT, _make_infix),
        ])

        assignment = Forward()
        assignment <<= (
            (name + ASSIGN + assignment).set_parse_action(lambda t: AssignExpression(t[0], t[1])) |
            infix
        )
        expression <<= assignment

        # Statements
        let_stmt = (LET - name + ASSIGN + expression + Opt(SEMI)).set_parse_action(
            lambda t: LetStatement(t[0], t[1])
        )
        return_stmt = (RETURN - Opt(expression) + Opt(SEMI)).set_parse_action(
            lambda t: ReturnStatement(t[0] if t else None)
        )
        while_stmt = (WHILE - LPAREN + expression + RPAREN + block + Opt(SEMI)).set_parse_action(
            lambda t: WhileStatement(t[0], t[1])
        )
        break_stmt = (BREAK + Opt(SEMI)).set_parse_action(lambda t: BreakStatement())
        continue_stmt = (CONTINUE + Opt(SEMI)).set_parse_action(lambda t: ContinueStatement())
        expression_stmt = (expression + Opt(SEMI)).set_parse_action(lambda t: ExpressionStatement(t[0]))

        statement <<= (
            let_stmt | return_stmt | while_stmt | break_stmt | continue_stmt |
            expression_stmt | SEMI
        )

        program = (ZeroOrMore(statement) + StringEnd()).set_parse_action(
            lambda t: Program(tuple(t))
        )
        program.ignore(dbl_slash_comment)

        # Store the main parsers
        self.program = program
        self.statement = statement
        self.expression = expression
        self.block = block

    def parse_program(self, text: str, filename: str = "<input>") -> Program:
        """Parse a complete Kestrel program"""
        if self.debug:
            debug_print(f"Parsing {filename} ({len(text)} characters)")
        try:
            return self.program.parse_string(text, parse_all=True)[0]
        except ParseBaseException as e:
            raise KestrelErrorHandler(text, filename).enhance_parse_exception(e) from e

    def parse_expression(self, text: str, filename: str = "<input>") -> Node:
        """Parse a single Kestrel expression"""
        try:
            return self.expression.parse_string(text, parse_all=True)[0]
        except ParseBaseException as e:
            raise KestrelErrorHandler(text, filename).enhance_parse_exception(e) from e


class KestrelParser:
    """Main Kestrel parser combining tokenizer and grammar"""

    def __init__(self, debug: bool = False):
        self.debug = debug
        self.grammar = KestrelGrammar(debug)

    def parse_file(self, filepath: str) -> Program:
        """Parse a Kestrel source file"""
        with open(filepath, 'r', encoding='utf-8') as f:
            content = f.read()
        return self.grammar.parse_program(content, filepath)

    def parse_string(self, text: str, filename: str = "<input>") -> Program:
        """Parse Kestrel source code from string"""
        return self.grammar.parse_program(text, filename)

    def parse_expression(self, text: str, filename: str = "<input>") -> Node:
        """Parse a single Kestrel expression"""
        return self.grammar.parse_expression(text, filename)

    def tokenize(self, text: str, filename: str = "<input>") -> List[Token]:
        """Tokenize Kestrel source code"""
        return KestrelTokenizer(filename).tokenize(text)


# Factory functions for creating parsers
def create_parser(debug: bool = False) -> KestrelParser:
    """Create a Kestrel parser"""
    return KestrelParser(debug=debug)


def pretty_print_ast(node: Any, indent: int = 0) -> str:
    """Pretty print an AST node as an indented tree"""
    pad = "  " * indent
    result = f"{pad}{type(node).__name__}"

    scalars = []
    children = []
    for f in fields(node):
        value = getattr(node, f.name)
        if is_dataclass(value):
            children.append((f.name, [value]))
        elif isinstance(value, tuple) and any(is_dataclass(item) or isinstance(item, tuple) for item in value):
            children.append((f.name, list(value)))
        else:
            scalars.append(f"{f.name}={value!r}")

    if scalars:
        result += f"({', '.join(scalars)})"
    result += "\n"

    for field_name, items in children:
        result += f"{pad}  .{field_name}\n"
        for item in items:
            if isinstance(item, tuple):
                # hash literal pair
                for part in item:
                    result += pretty_print_ast(part, indent + 2)
            else:
                result += pretty_print_ast(item, indent + 2)

    return result
