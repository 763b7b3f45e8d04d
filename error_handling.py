"""
Error handling for Kestrel
Parse error enrichment (context, expectations, suggestions) and host exceptions.
Language-level runtime errors are values, see objects.Error
"""

from typing import List, Optional, Dict
from pyparsing import ParseBaseException
import re


# ============================================================================
# DATA STRUCTURES (Immutable Dictionaries)
# ============================================================================

def make_parse_error(
    message: str,
    location: int,
    line: int,
    column: int,
    expected: Optional[List[str]] = None,
    got: Optional[str] = None,
    context: Optional[str] = None,
    suggestions: Optional[List[str]] = None,
    filename: str = "<input>"
) -> Dict:
    """Create an immutable parse error structure"""
    return {
        'message': message,
        'location': location,
        'line': line,
        'column': column,
        'expected': expected or [],
        'got': got,
        'context': context,
        'suggestions': suggestions or [],
        'filename': filename
    }


def format_parse_error(error: Dict) -> str:
    """Format parse error as string"""
    error_msg = f"Parse error in {error['filename']} at line {error['line']}, column {error['column']}:\n"
    error_msg += f"  {error['message']}\n"

    if error['expected']:
        error_msg += f"  Expected: {', '.join(error['expected'])}\n"

    if error['got']:
        error_msg += f"  Got: {error['got']}\n"

    if error['context']:
        error_msg += f"  Context:\n{error['context']}\n"

    if error['suggestions']:
        error_msg += "  Suggestions:\n"
        for suggestion in error['suggestions']:
            error_msg += f"    - {suggestion}\n"

    return error_msg


# ============================================================================
# PURE FUNCTIONS
# ============================================================================

def get_context_lines(source_text: str, line_num: int, col_num: int, context_lines: int = 2) -> str:
    """Get context lines around the error"""
    lines = source_text.split('\n')
    start_line = max(0, line_num - context_lines - 1)
    end_line = min(len(lines), line_num + context_lines)

    context_parts = []
    for i in range(start_line, end_line):
        line_prefix = f"{i+1:4d}: "
        context_parts.append(f"{line_prefix}{lines[i]}")
        if i == line_num - 1:
            context_parts.append(f"{'':6}{' ' * (col_num - 1)}^ Error here")

    return '\n'.join(context_parts)


def extract_expected(exc: ParseBaseException) -> List[str]:
    """Extract expected tokens from exception"""
    expected = []

    # pyparsing only reports expectations through the message text
    msg = str(exc)
    if "Expected" in msg:
        expected_match = re.search(r"Expected\s+(.+?)(?:,\s+found|\s+\(at|$)", msg)
        if expected_match:
            expected.append(expected_match.group(1))

    return expected if expected else ["valid syntax"]


def extract_got(source_text: str, line_num: int, col_num: int) -> str:
    """Extract what was actually found at the error location"""
    lines = source_text.split('\n')

    if line_num <= len(lines):
        error_line = lines[line_num - 1]
        if col_num <= len(error_line):
            start = max(0, col_num - 1)
            end = min(len(error_line), col_num + 10)
            got_text = error_line[start:end].strip()
            if got_text:
                return f"'{got_text}'"
        if line_num == len(lines):
            return "end of input"
        return "end of line"
    return "end of input"


def generate_suggestions(got: str, expected: List[str], error_line: str = "") -> List[str]:
    """Generate helpful suggestions based on the error"""
    suggestions = []
    expected_text = " ".join(expected)
    stripped = error_line.strip()

    if re.match(r"(if|while)\b", stripped) and "'('" in expected_text:
        suggestions.append("Conditions of 'if' and 'while' must be wrapped in parentheses: if (x) { ... }")

    if "'{'" in expected_text:
        suggestions.append("Bodies of 'if', 'else', 'while' and 'fn' must be blocks wrapped in braces {}")

    if "'}'" in expected_text:
        suggestions.append("Check that every '{' has a matching '}'")

    if stripped.startswith("let") and ("'='" in expected_text or "W:(" in expected_text or "Re:" in expected_text):
        suggestions.append("Bindings are written as: let name = value;")

    if "'='" in got and "'='" not in expected_text:
        suggestions.append("Use '==' to compare values; '=' only rebinds an existing variable")

    if "elif" in got or "else if" in stripped:
        suggestions.append("There is no 'elif'; nest an 'if' inside the 'else' block instead")

    if "end of input" in got:
        suggestions.append("The input ended early; look for an unclosed bracket or string")

    return suggestions


def enhance_parse_exception_dict(exc: ParseBaseException, source_text: str, filename: str = "<input>") -> Dict:
    """Convert pyparsing exception to enhanced Kestrel error dict"""
    line_num = exc.lineno
    col_num = exc.column

    context = get_context_lines(source_text, line_num, col_num)
    expected = extract_expected(exc)
    got = extract_got(source_text, line_num, col_num)

    lines = source_text.split('\n')
    error_line = lines[line_num - 1] if 0 < line_num <= len(lines) else ""
    suggestions = generate_suggestions(got, expected, error_line)

    return make_parse_error(
        message=exc.msg,
        location=exc.loc,
        line=line_num,
        column=col_num,
        expected=expected,
        got=got,
        context=context,
        suggestions=suggestions,
        filename=filename
    )


# ============================================================================
# EXCEPTIONS
# ============================================================================

class KestrelError(Exception):
    """Base class for host-level Kestrel failures"""
    pass


class KestrelParseError(KestrelError):
    """Syntax error with source context, expectations and suggestions"""
    def __init__(self, message: str, location: int = 0, line: int = 0, column: int = 0,
                 expected: Optional[List[str]] = None, got: Optional[str] = None,
                 context: Optional[str] = None, suggestions: Optional[List[str]] = None,
                 filename: str = "<input>"):
        self.message = message
        self.location = location
        self.line = line
        self.column = column
        self.expected = expected or []
        self.got = got
        self.context = context
        self.suggestions = suggestions or []
        self.filename = filename
        super().__init__(message)

    def __str__(self) -> str:
        error_dict = make_parse_error(
            self.message, self.location, self.line, self.column,
            self.expected, self.got, self.context, self.suggestions,
            self.filename
        )
        return format_parse_error(error_dict)


class KestrelTokenizerError(KestrelError):
    """Unknown character or unterminated string in the source"""
    def __init__(self, message: str, span=None):
        self.message = message
        self.span = span
        super().__init__(f"{message} at {span}" if span else message)


class KestrelRuntimeError(KestrelError):
    """Misuse of the interpreter's host API"""
    def __init__(self, message: str):
        self.message = message
        super().__init__(message)


class UnboundVariableError(KestrelRuntimeError):
    """Update of a name that no enclosing scope binds"""
    def __init__(self, name: str):
        self.name = name
        super().__init__(f"variable {name} does not exist yet")


class KestrelErrorHandler:
    """Turns pyparsing failures for one source text into KestrelParseError"""
    def __init__(self, source_text: str, filename: str = "<input>"):
        self.source_text = source_text
        self.filename = filename

    def enhance_parse_exception(self, exc: ParseBaseException) -> KestrelParseError:
        """Convert pyparsing exception to enhanced Kestrel error"""
        error_dict = enhance_parse_exception_dict(exc, self.source_text, self.filename)
        return KestrelParseError(
            message=error_dict['message'],
            location=error_dict['location'],
            line=error_dict['line'],
            column=error_dict['column'],
            expected=error_dict['expected'],
            got=error_dict['got'],
            context=error_dict['context'],
            suggestions=error_dict['suggestions'],
            filename=error_dict['filename']
        )
