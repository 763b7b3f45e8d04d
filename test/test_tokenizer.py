"""
Tokenizer tests for Kestrel
"""

import pytest
from parsing import KestrelTokenizer
from error_handling import KestrelTokenizerError


class TestTokenizer:
  """Test the token stream produced for source text"""

  @pytest.fixture
  def tokenizer(self):
    return KestrelTokenizer("test.kes")

  def types(self, tokens):
    return [token.type for token in tokens]

  def test_operators_and_delimiters(self, tokenizer):
    """Test single and double character operators"""
    tokens = tokenizer.tokenize("=+(){},;-!*/<>:[] == !=")
    assert self.types(tokens) == [
      "ASSIGN", "PLUS", "LPAREN", "RPAREN", "LBRACE", "RBRACE", "COMMA",
      "SEMICOLON", "MINUS", "BANG", "ASTERISK", "SLASH", "LT", "GT", "COLON",
      "LBRACKET", "RBRACKET", "EQ", "NOT_EQ", "EOF",
    ]

  def test_program_token_stream(self, tokenizer):
    """Test a realistic program including keywords and literals"""
    source = '''let five = 5;
let add = fn(x, y) {
  x + y;
};
while (true) { break; continue; }
if (5 < 10) { return true; } else { return false; }
"foo bar"
{"foo": "bar"}'''
    tokens = tokenizer.tokenize(source)
    expected = [
      ("LET", "let"), ("IDENT", "five"), ("ASSIGN", "="), ("INT", 5), ("SEMICOLON", ";"),
      ("LET", "let"), ("IDENT", "add"), ("ASSIGN", "="), ("FUNCTION", "fn"),
      ("LPAREN", "("), ("IDENT", "x"), ("COMMA", ","), ("IDENT", "y"), ("RPAREN", ")"),
      ("LBRACE", "{"), ("IDENT", "x"), ("PLUS", "+"), ("IDENT", "y"), ("SEMICOLON", ";"),
      ("RBRACE", "}"), ("SEMICOLON", ";"),
      ("WHILE", "while"), ("LPAREN", "("), ("TRUE", "true"), ("RPAREN", ")"),
      ("LBRACE", "{"), ("BREAK", "break"), ("SEMICOLON", ";"),
      ("CONTINUE", "continue"), ("SEMICOLON", ";"), ("RBRACE", "}"),
      ("IF", "if"), ("LPAREN", "("), ("INT", 5), ("LT", "<"), ("INT", 10), ("RPAREN", ")"),
      ("LBRACE", "{"), ("RETURN", "return"), ("TRUE", "true"), ("SEMICOLON", ";"), ("RBRACE", "}"),
      ("ELSE", "else"), ("LBRACE", "{"), ("RETURN", "return"), ("FALSE", "false"),
      ("SEMICOLON", ";"), ("RBRACE", "}"),
      ("STRING", "foo bar"),
      ("LBRACE", "{"), ("STRING", "foo"), ("COLON", ":"), ("STRING", "bar"), ("RBRACE", "}"),
      ("EOF", ""),
    ]
    assert [(token.type, token.value) for token in tokens] == expected

  def test_comments_are_skipped(self, tokenizer):
    """Test that // comments run to the end of the line"""
    tokens = tokenizer.tokenize("let x = 1; // the answer\n// whole line\nx")
    assert self.types(tokens) == ["LET", "IDENT", "ASSIGN", "INT", "SEMICOLON", "IDENT", "EOF"]

  def test_comment_marker_inside_string(self, tokenizer):
    """Test that // inside a string literal is not a comment"""
    tokens = tokenizer.tokenize('"http://example.com"')
    assert tokens[0].type == "STRING"
    assert tokens[0].value == "http://example.com"

  def test_string_escapes(self, tokenizer):
    """Test escape processing in string literals"""
    tokens = tokenizer.tokenize(r'"a\tb\nc\"d\\"')
    assert tokens[0].value == 'a\tb\nc"d\\'

  def test_spans_track_lines_and_columns(self, tokenizer):
    """Test that spans are 1-based and per line"""
    tokens = tokenizer.tokenize("let x\n  = 10")
    assign = tokens[2]
    assert assign.span.start_line == 2
    assert assign.span.start_col == 3
    assert str(assign.span) == "test.kes:2:3-4"
    number = tokens[3]
    assert number.span.text == "10"

  def test_unknown_character(self, tokenizer):
    """Test that unknown characters raise a tokenizer error"""
    with pytest.raises(KestrelTokenizerError) as exc_info:
      tokenizer.tokenize("let x = 5 @ 3;")
    assert "Unknown character '@'" in str(exc_info.value)
    assert exc_info.value.span.start_col == 11

  def test_unterminated_string(self, tokenizer):
    """Test that a string must close on its own line"""
    with pytest.raises(KestrelTokenizerError) as exc_info:
      tokenizer.tokenize('let s = "open\n";')
    assert "Unterminated string" in str(exc_info.value)

  def test_identifiers_may_contain_keywords(self, tokenizer):
    """Test that keyword prefixes do not split identifiers"""
    tokens = tokenizer.tokenize("iffy letter fn_1 _tmp")
    assert self.types(tokens) == ["IDENT", "IDENT", "IDENT", "IDENT", "EOF"]
