"""
Kestrel Programming Language - Main Entry Point
A small dynamically typed scripting language with closures, arrays and hashes
"""

import sys
import argparse
from pathlib import Path
from typing import List, Optional
import os

# Readline support for history and auto-completion
try:
  import readline
  READLINE_AVAILABLE = True
except ImportError:
  READLINE_AVAILABLE = False

from parsing import create_parser, KEYWORDS, KestrelParseError, pretty_print_ast
from error_handling import KestrelTokenizerError
from interpreter import create_interpreter, create_debug_interpreter, KestrelInterpreter
from objects import Error, Null
from stdlib import list_builtin_functions


VERSION = "0.1.0"
PROMPT = ">> "
CONTINUATION_PROMPT = ".. "
HISTORY_FILE = "~/.kestrel_history"
HISTORY_LENGTH = 1000
RECURSION_LIMIT = 10000

REPL_COMMANDS = [":tokens", ":ast", ":env", ":help", "exit"]


def create_arg_parser() -> argparse.ArgumentParser:
  """Create command line argument parser"""
  parser = argparse.ArgumentParser(
      prog='kestrel',
      description='Kestrel Programming Language - closures, arrays, hashes and loops',
      formatter_class=argparse.RawDescriptionHelpFormatter,
      epilog="""
Examples:
  %(prog)s script.kes             # Run a Kestrel script
  %(prog)s -i                     # Interactive mode
  %(prog)s --tokens script.kes    # Show the token stream
  %(prog)s --parse script.kes     # Parse and show the AST
  %(prog)s --debug script.kes     # Run with evaluation tracing
  %(prog)s -i --debug             # Interactive mode with tracing
        """
  )

  parser.add_argument(
      'script',
      nargs='?',
      help='Kestrel script file to execute'
  )

  parser.add_argument(
      '-i', '--interactive',
      action='store_true',
      help='Start interactive mode'
  )

  parser.add_argument(
      '--tokens',
      action='store_true',
      help='Tokenize file and show the tokens (for debugging)'
  )

  parser.add_argument(
      '--parse',
      action='store_true',
      help='Parse file and show the AST (for debugging)'
  )

  parser.add_argument(
      '--debug',
      action='store_true',
      help='Trace evaluation to stderr'
  )

  parser.add_argument(
      '--version',
      action='version',
      version=f'Kestrel v{VERSION}'
  )

  return parser


def read_source(script_path: str) -> str:
  """Read a script, exiting with status 1 when it is missing, unreadable or empty"""
  try:
    source = Path(script_path).read_text(encoding='utf-8')
  except FileNotFoundError:
    print(f"Error: Script file '{script_path}' not found", file=sys.stderr)
    print("  Hint: Check the file path and make sure the file exists", file=sys.stderr)
    sys.exit(1)
  except PermissionError:
    print(f"Error: Permission denied reading '{script_path}'", file=sys.stderr)
    sys.exit(1)
  except UnicodeDecodeError as e:
    print(f"Error: Cannot decode file '{script_path}': {e}", file=sys.stderr)
    print("  Hint: Make sure the file is a text file with UTF-8 encoding", file=sys.stderr)
    sys.exit(1)

  if not source:
    print(f"Error: Script file '{script_path}' is empty", file=sys.stderr)
    sys.exit(1)
  return source


def show_tokens(script_path: str) -> None:
  """Tokenize a Kestrel script file and print one token per line"""
  source = read_source(script_path)
  parser = create_parser()
  try:
    tokens = parser.tokenize(source, script_path)
  except KestrelTokenizerError as e:
    print(f"Tokenizer error in '{script_path}': {e}", file=sys.stderr)
    sys.exit(1)

  for token in tokens:
    print(f"{token.span}  {token}")


def parse_file(script_path: str, debug: bool = False) -> None:
  """Parse a Kestrel script file and show the AST"""
  source = read_source(script_path)
  parser = create_parser(debug)
  try:
    program = parser.parse_string(source, script_path)
  except KestrelParseError as e:
    print(f"Parse error in '{script_path}':\n{e}", file=sys.stderr)
    sys.exit(1)

  print(f"Parsed {len(program.statements)} top-level statements:")
  print("=" * 50)
  for i, statement in enumerate(program.statements, 1):
    print(f"\nStatement {i}: {statement}")
    print(pretty_print_ast(statement), end='')


def run_script_file(script_path: str, debug: bool = False) -> None:
  """Run a Kestrel script; a runtime error ends the process with status 1"""
  source = read_source(script_path)
  interpreter = create_debug_interpreter() if debug else create_interpreter()

  try:
    result = interpreter.run(source, script_path)
  except KestrelParseError as e:
    print(f"Parse error in '{script_path}':\n{e}", file=sys.stderr)
    sys.exit(1)

  if isinstance(result, Error):
    print(result.inspect(), file=sys.stderr)
    sys.exit(1)


def setup_readline() -> None:
  """Setup readline with history and auto-completion"""
  if not READLINE_AVAILABLE:
    return

  history_file = os.path.expanduser(HISTORY_FILE)
  try:
    readline.read_history_file(history_file)
  except OSError:
    pass  # First session, no history yet

  readline.set_history_length(HISTORY_LENGTH)

  completions = sorted(KEYWORDS) + list_builtin_functions() + REPL_COMMANDS

  def completer(text, state):
    options = [word for word in completions if word.startswith(text)]
    if state < len(options):
      return options[state]
    return None

  readline.set_completer(completer)
  readline.parse_and_bind("tab: complete")

  import atexit
  atexit.register(write_history, history_file)


def write_history(history_file: str) -> None:
  try:
    readline.write_history_file(history_file)
  except OSError as e:
    print(f"Warning: could not save history to {history_file}: {e}", file=sys.stderr)


def needs_more_input(source: str) -> bool:
  """True while the source has unclosed parentheses, braces or brackets"""
  try:
    tokens = create_parser().tokenize(source)
  except KestrelTokenizerError:
    # Let the parser report it
    return False

  depth = 0
  for token in tokens:
    if token.type in ("LPAREN", "LBRACE", "LBRACKET"):
      depth += 1
    elif token.type in ("RPAREN", "RBRACE", "RBRACKET"):
      depth -= 1
  return depth > 0


def read_statement() -> str:
  """Read one REPL entry, continuing across lines until brackets balance"""
  lines = [input(PROMPT)]
  while needs_more_input("\n".join(lines)):
    lines.append(input(CONTINUATION_PROMPT))
  return "\n".join(lines)


def print_help() -> None:
  print("REPL Commands:")
  print("  :tokens <code>    - Show the token stream")
  print("  :ast <code>       - Show the parsed AST")
  print("  :env              - Show current bindings")
  print("  :help             - Show this help")
  print("  exit              - Exit REPL")
  print()
  print("Language features:")
  print("  let x = 5;                      - Binding")
  print("  x = x + 1;                      - Rebinding")
  print("  let add = fn(a, b) { a + b };   - Function")
  print("  if (x > 1) { 1 } else { 2 }     - Conditional")
  print("  while (x > 0) { x = x - 1; }    - Loop with break/continue")
  print("  [1, 2][0]  {\"k\": 1}[\"k\"]        - Arrays and hashes")
  print(f"  Built-ins: {', '.join(list_builtin_functions())}")


def handle_command(code: str, interpreter: KestrelInterpreter) -> None:
  """Run a ':' REPL command"""
  command, _, argument = code.partition(" ")

  if command == ":tokens":
    try:
      for token in interpreter.parser.tokenize(argument):
        print(f"  {token}")
    except KestrelTokenizerError as e:
      print(f"Tokenizer error: {e}")
  elif command == ":ast":
    try:
      program = interpreter.parser.parse_string(argument)
      for statement in program.statements:
        print(pretty_print_ast(statement), end='')
    except KestrelParseError as e:
      print(f"Parse error: {e}")
  elif command == ":env":
    print("Current environment:")
    bindings = interpreter.user_bindings()
    if bindings:
      for name, value in bindings.items():
        val_str = value.inspect()
        if len(val_str) > 60:
          val_str = val_str[:57] + "..."
        print(f"  {name} = {val_str}")
    else:
      print("  (no user-defined bindings)")
  elif command == ":help":
    print_help()
  else:
    print(f"Unknown command '{command}', type :help for the list")


def run_interactive_mode(debug: bool = False, history: bool = True) -> None:
  """Run Kestrel in interactive mode against one persistent environment"""
  print(f"Kestrel v{VERSION} - Interactive Mode")
  print("Type 'exit' to quit, ':help' for commands")
  if history and READLINE_AVAILABLE:
    print("Readline enabled: Use ↑/↓ for history, Tab for completion")
  if debug:
    print("Debug mode enabled")
  print()

  if history:
    setup_readline()

  interpreter = create_debug_interpreter() if debug else create_interpreter()

  while True:
    try:
      code = read_statement()
    except (KeyboardInterrupt, EOFError):
      print("\nGoodbye!")
      break

    stripped = code.strip()
    if not stripped:
      continue
    if stripped == "exit":
      break
    if stripped.startswith(":"):
      handle_command(stripped, interpreter)
      continue

    try:
      result = interpreter.run(code)
    except KestrelParseError as e:
      print(f"Parse error: {e}")
      continue

    if not isinstance(result, Null):
      print(result.inspect())


def show_language_info() -> None:
  """Show Kestrel language information"""
  print("Kestrel Programming Language")
  print("=" * 50)
  print("A small dynamically typed scripting language with:")
  print("• First-class functions and closures")
  print("• Integers, booleans, strings, arrays and hashes")
  print("• while loops with break and continue")
  print()


def main(argv: Optional[List[str]] = None) -> None:
  """Main entry point for Kestrel"""
  sys.setrecursionlimit(max(sys.getrecursionlimit(), RECURSION_LIMIT))

  argv = sys.argv[1:] if argv is None else argv
  arg_parser = create_arg_parser()
  args = arg_parser.parse_args(argv)

  if not argv:
    # No arguments - show info and start interactive mode
    show_language_info()
    print("Use 'kestrel --help' for command line options")
    print()
    run_interactive_mode(debug=False)
    return

  if args.script:
    if args.tokens:
      show_tokens(args.script)
    elif args.parse:
      parse_file(args.script, debug=args.debug)
    else:
      run_script_file(args.script, debug=args.debug)

  elif args.interactive:
    run_interactive_mode(debug=args.debug)

  else:
    arg_parser.print_help()
    print()
    show_language_info()


if __name__ == "__main__":
  main()
