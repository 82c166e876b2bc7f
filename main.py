"""
Talea Command Language - Main Entry Point
An interactive command language for loading, slicing and counting text
"""

import sys
import argparse
from pathlib import Path
from typing import Iterable, Optional
import os

# Readline support for history and auto-completion
try:
  import readline
  READLINE_AVAILABLE = True
except ImportError:
  READLINE_AVAILABLE = False

from backends import get_backend_registry
from error_handling import (
  ExitRequested,
  TaleaError,
  TaleaParseError,
  format_error_line,
  get_context_lines,
)
from interpreter import TaleaInterpreter, create_debug_interpreter, create_interpreter
from parsing import SYNONYMS, create_debug_parser, create_parser, pretty_print_statement
from stdlib import show_value
from utilities import truncate


VERSION = "0.1.0"
HISTORY_FILE = "~/.talea_history"
META_COMMANDS = [":help", ":env", ":backends", ":tokens", ":ast"]


def create_arg_parser() -> argparse.ArgumentParser:
  """Create command line argument parser"""
  parser = argparse.ArgumentParser(
      description='Talea - a command language for text and corpus work',
      formatter_class=argparse.RawDescriptionHelpFormatter,
      epilog="""
Examples:
  %(prog)s script.talea            # Run a Talea script
  %(prog)s -i                      # Interactive mode
  %(prog)s --tokens script.talea   # Show the token stream of each line
  %(prog)s --parse script.talea    # Show the statement tree of each line
  %(prog)s --debug script.talea    # Run with debug output
        """
  )

  parser.add_argument(
      'script',
      nargs='?',
      help='Talea script file to execute'
  )

  parser.add_argument(
      '-i', '--interactive',
      action='store_true',
      help='Start interactive mode'
  )

  parser.add_argument(
      '--tokens',
      action='store_true',
      help='Tokenize file and show tokens (for debugging)'
  )

  parser.add_argument(
      '--parse',
      action='store_true',
      help='Parse file and show statement trees (for debugging)'
  )

  parser.add_argument(
      '--debug',
      action='store_true',
      help='Enable debug output for all stages'
  )

  parser.add_argument(
      '--version',
      action='version',
      version=f'Talea v{VERSION}'
  )

  return parser


def iter_script_lines(script_path: str) -> Iterable:
  """Yield (line number, command) for every non-blank, non-comment line"""
  content = Path(script_path).read_text(encoding='utf-8')
  for line_num, line in enumerate(content.splitlines(), 1):
    stripped = line.strip()
    if stripped and not stripped.startswith('#'):
      yield line_num, stripped


def report_error(error: TaleaError, line: str, debug: bool = False, prefix: str = "") -> None:
  """Print one error line, with a caret under parse errors in debug mode"""
  print(f"{prefix}{format_error_line(error)}")
  if debug and isinstance(error, TaleaParseError) and error.column:
    print(get_context_lines(line, 1, error.column))


def run_line(interpreter: TaleaInterpreter, line: str, debug: bool = False, prefix: str = "") -> bool:
  """Execute one line of commands; returns False once the session should end"""
  try:
    interpreter.run(line)
  except ExitRequested:
    return False
  except TaleaError as e:
    report_error(e, line, debug, prefix)
  return True


def show_tokens_file(script_path: str, debug: bool = False) -> None:
  """Tokenize a Talea script file and show each line's tokens"""
  parser = create_debug_parser() if debug else create_parser()
  for line_num, line in iter_script_lines(script_path):
    tokens = parser.tokenize(line)
    print(f"{line_num:4d}: {' '.join(str(t) for t in tokens)}")


def parse_file(script_path: str, debug: bool = False) -> None:
  """Parse a Talea script file and show the statement trees"""
  parser = create_debug_parser() if debug else create_parser()
  print(f"Parsing {script_path}...")
  for line_num, line in iter_script_lines(script_path):
    print(f"\nLine {line_num}: {line}")
    try:
      for statement in parser.parse_string(line):
        print(pretty_print_statement(statement, 1), end='')
    except ExitRequested:
      print("  Exit")
    except TaleaParseError as e:
      report_error(e, line, debug, "  ")


def run_script_file(script_path: str, debug: bool = False) -> None:
  """Run a Talea script file, one line at a time, in a single session"""
  interpreter = create_debug_interpreter() if debug else create_interpreter()
  for line_num, line in iter_script_lines(script_path):
    if debug:
      print(f"{line_num:4d}> {line}")
    if not run_line(interpreter, line, debug, prefix=f"line {line_num}: "):
      break


def setup_readline():
  """Setup readline with history and auto-completion"""
  if not READLINE_AVAILABLE:
    return

  history_file = os.path.expanduser(HISTORY_FILE)
  try:
    readline.read_history_file(history_file)
  except OSError:
    pass  # First run, no history yet

  readline.set_history_length(1000)

  completions = sorted(set(SYNONYMS)) + META_COMMANDS

  def completer(text, state):
    options = [cmd for cmd in completions if cmd.startswith(text)]
    if state < len(options):
      return options[state]
    return None

  readline.set_completer(completer)
  readline.parse_and_bind("tab: complete")

  def save_history():
    try:
      readline.write_history_file(history_file)
    except OSError:
      pass  # Read-only home directory

  import atexit
  atexit.register(save_history)


def print_env(interpreter: TaleaInterpreter) -> None:
  print("Current environment:")
  if not interpreter.bindings:
    print("  (no bindings)")
    return
  for name, value in interpreter.bindings.items():
    print(f"  {name} = {truncate(show_value(value))} : {value['type']}")


def print_repl_help() -> None:
  print("REPL Commands:")
  print("  :tokens <line>    - Show the tokens of a line")
  print("  :ast <line>       - Show the statement trees of a line")
  print("  :env              - Show current environment")
  print("  :backends         - Show enabled backends")
  print("  :help             - Show this help")
  print("  exit | quit       - Exit REPL")
  print()
  print("Type 'help' for the command language itself.")


def run_meta_command(interpreter: TaleaInterpreter, code: str, debug: bool = False) -> None:
  """Handle a ':' command typed at the prompt"""
  command, _, rest = code.partition(" ")
  if command == ":env":
    print_env(interpreter)
  elif command == ":backends":
    enabled = ", ".join(sorted(interpreter.active_backends)) or "(none)"
    print(f"Enabled backends: {enabled}")
  elif command == ":tokens":
    print(" ".join(str(t) for t in interpreter.parser.tokenize(rest)))
  elif command == ":ast":
    try:
      for statement in interpreter.parser.parse_string(rest):
        print(pretty_print_statement(statement), end='')
    except ExitRequested:
      print("Exit")
    except TaleaParseError as e:
      report_error(e, rest, debug)
  elif command == ":help":
    print_repl_help()
  else:
    print(f"Unknown REPL command: {command} (try :help)")


def run_interactive_mode(debug: bool = False, interpreter: Optional[TaleaInterpreter] = None) -> None:
  """Run Talea in interactive mode"""
  print(f"Talea v{VERSION} - Interactive Mode")
  print("Type 'exit' to quit, 'help' for commands, ':help' for REPL commands")
  if debug:
    print("Debug mode enabled")
  print()

  setup_readline()

  if interpreter is None:
    interpreter = create_debug_interpreter() if debug else create_interpreter()

  while True:
    try:
      code = input("talea> ").strip()

      if not code:
        continue

      if code.startswith(":"):
        run_meta_command(interpreter, code, debug)
        continue

      if not run_line(interpreter, code, debug):
        break

    except KeyboardInterrupt:
      print("\nGoodbye!")
      break
    except EOFError:
      print("\nGoodbye!")
      break
    except Exception as e:
      print(f"Unexpected error: {e}")
      if debug:
        import traceback
        traceback.print_exc()


def show_language_info() -> None:
  """Show Talea language information"""
  print("Talea Command Language")
  print("=" * 50)
  print("Natural-language-like commands for text work:")
  print('  load "notes.txt" as doc')
  print("  tokenize doc as words_list")
  print("  count words in words_list as n")
  print("  use python / use r to enable NLP and statistics backends")
  print()


def main() -> None:
  """Main entry point for Talea"""
  arg_parser = create_arg_parser()
  args = arg_parser.parse_args()

  try:
    if len(sys.argv) == 1:
      show_language_info()
      run_interactive_mode(debug=False)
      return

    if args.script:
      if not Path(args.script).exists():
        print(f"Error: Script file '{args.script}' does not exist")
        sys.exit(1)

      try:
        if args.tokens:
          show_tokens_file(args.script, debug=args.debug)
        elif args.parse:
          parse_file(args.script, debug=args.debug)
        else:
          run_script_file(args.script, debug=args.debug)
      except (OSError, UnicodeDecodeError) as e:
        print(f"Error: Cannot read script '{args.script}': {e}")
        sys.exit(1)

    elif args.interactive:
      run_interactive_mode(debug=args.debug)

    else:
      arg_parser.print_help()
      print()
      show_language_info()
  finally:
    get_backend_registry().terminate_all()


if __name__ == "__main__":
  main()
