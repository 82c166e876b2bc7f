"""
Talea Interpreter
Walks statement trees against one session: a flat environment plus the set of enabled backends
Side effects (file I/O, printing, backend calls) happen inside the statement evaluators
"""

from typing import Any, Callable, Dict, List, Optional, Set

from backends import BackendRegistry, PYTHON, R, TAG_SCHEMES, get_backend_registry
from error_handling import (
  BackendNotEnabled,
  TaleaIOError,
  TaleaRuntimeError,
  TypeMismatch,
  UnsupportedCombination,
  VariableNotFound,
)
from parsing import (
  ArithmeticStatement,
  CountStatement,
  DefineStatement,
  FilterStatement,
  HelpStatement,
  Identifier,
  LemmatizeStatement,
  LoadStatement,
  NumberLiteral,
  PrintStatement,
  SaveStatement,
  Statement,
  StringLiteral,
  SummarizeStatement,
  TagStatement,
  TokenizeStatement,
  UnitExpr,
  UseStatement,
  create_parser,
)
from stdlib import (
  STRING,
  extract_numbers,
  join_text,
  make_list,
  make_number,
  make_string,
  make_tuple,
  make_unit,
  show_value,
  talea_arithmetic,
  talea_count,
  talea_filter,
  talea_print,
  talea_tokenize,
)
from utilities import expect_kind, identifier_name


# ============================================================================
# DATA STRUCTURES
# ============================================================================

def make_runtime_env(bindings: Optional[Dict] = None) -> Dict:
  """Create the flat session environment"""
  return {
      'bindings': dict(bindings or {})
  }


def make_execution_context(backends: Optional[BackendRegistry] = None,
                           debug: bool = False) -> Dict:
  """Create an execution context tracking which backends are enabled"""
  registry = backends if backends is not None else get_backend_registry()
  if debug:
    # Actor start-up and provider construction are reported too
    registry.debug = True
  return {
      'active_backends': set(),
      'backends': registry,
      'debug': debug
  }


# ============================================================================
# ENVIRONMENT OPERATIONS
# ============================================================================

def env_bind_value(env: Dict, name: str, value: Dict) -> Dict:
  """Bind name to value; the last write wins"""
  env['bindings'][name] = value
  return env


def env_lookup_value(env: Dict, name: str) -> Dict:
  """Look up a variable; unbound names are always an error"""
  if name not in env['bindings']:
    raise VariableNotFound(name)
  return env['bindings'][name]


# ============================================================================
# CAPABILITY CHECKS
# ============================================================================

def enable_backend(context: Dict, backend: str) -> None:
  context['active_backends'].add(backend)


def require_backend(context: Dict, backend: str, verb: str) -> None:
  if backend not in context['active_backends']:
    raise BackendNotEnabled(backend, verb)


# ============================================================================
# FILE I/O
# ============================================================================

def io_read(path: str) -> str:
  """Read a whole file as text, without newline translation"""
  try:
    with open(path, 'r', encoding='utf-8', newline='') as f:
      return f.read()
  except (OSError, ValueError) as e:
    reason = getattr(e, 'strerror', None) or str(e)
    raise TaleaIOError(f"Failed to read file '{path}': {reason}", path) from e


def io_write(path: str, content: str) -> None:
  """Write a whole file, replacing what was there"""
  try:
    with open(path, 'w', encoding='utf-8', newline='') as f:
      f.write(content)
  except (OSError, ValueError) as e:
    reason = getattr(e, 'strerror', None) or str(e)
    raise TaleaIOError(f"Failed to write file '{path}': {reason}", path) from e


# ============================================================================
# EXPRESSION EVALUATION
# ============================================================================

def eval_expression(expr: Any, env: Dict) -> Dict:
  """Resolve an expression to a runtime value"""
  if isinstance(expr, Identifier):
    return env_lookup_value(env, expr.name)
  elif isinstance(expr, StringLiteral):
    return make_string(expr.value)
  elif isinstance(expr, NumberLiteral):
    return make_number(expr.value)
  elif isinstance(expr, UnitExpr):
    return make_unit(expr.unit)
  else:
    raise TaleaRuntimeError(f"Cannot evaluate expression {expr!r}")


# ============================================================================
# STATEMENT EVALUATION
# ============================================================================

def eval_use(stmt: UseStatement, env: Dict, context: Dict) -> None:
  enable_backend(context, stmt.backend)
  if context['debug']:
    print(f"[backend {stmt.backend} enabled]")


def eval_load(stmt: LoadStatement, env: Dict, context: Dict) -> None:
  path = expect_kind(eval_expression(stmt.source, env), STRING, "load source")
  content = io_read(path)
  if context['debug']:
    print(f"[Interpreter: Successfully read {len(content.encode('utf-8'))} bytes from '{path}']")
  env_bind_value(env, stmt.alias.name, make_string(content))


def eval_save(stmt: SaveStatement, env: Dict, context: Dict) -> None:
  value = eval_expression(stmt.source, env)
  path = expect_kind(eval_expression(stmt.destination, env), STRING, "save destination")
  content = show_value(value)
  io_write(path, content)
  if context['debug']:
    print(f"[Interpreter: Wrote {len(content.encode('utf-8'))} bytes to '{path}']")


def eval_print(stmt: PrintStatement, env: Dict, context: Dict) -> None:
  talea_print(eval_expression(stmt.expression, env))


def eval_define(stmt: DefineStatement, env: Dict, context: Dict) -> None:
  value = eval_expression(stmt.value, env)
  env_bind_value(env, stmt.name.name, value)


def eval_tokenize(stmt: TokenizeStatement, env: Dict, context: Dict) -> None:
  result = talea_tokenize(eval_expression(stmt.source, env))
  env_bind_value(env, stmt.destination.name, result)


def eval_count(stmt: CountStatement, env: Dict, context: Dict) -> None:
  source = eval_expression(stmt.source, env)
  result = talea_count(stmt.unit.unit, source)
  env_bind_value(env, stmt.destination.name, result)


def eval_tag(stmt: TagStatement, env: Dict, context: Dict) -> None:
  source = eval_expression(stmt.source, env)
  require_backend(context, PYTHON, "tag")
  scheme = stmt.method.unit
  if scheme not in TAG_SCHEMES:
    raise UnsupportedCombination(
        f"Unsupported tagging method '{scheme.lower()}'; use pos or ner")
  text = join_text(source, "tag")
  pairs = context['backends'].tag(text, scheme)
  result = make_list([make_tuple([make_string(word), make_string(label)]) for word, label in pairs])
  env_bind_value(env, stmt.destination.name, result)


def eval_lemmatize(stmt: LemmatizeStatement, env: Dict, context: Dict) -> None:
  source = eval_expression(stmt.source, env)
  require_backend(context, PYTHON, "lemmatize")
  text = join_text(source, "lemmatize")
  lemmas = context['backends'].lemmatize(text)
  env_bind_value(env, stmt.destination.name, make_list([make_string(lemma) for lemma in lemmas]))


def eval_filter(stmt: FilterStatement, env: Dict, context: Dict) -> None:
  items = eval_expression(stmt.source, env)
  needle = eval_expression(stmt.condition.operand, env)
  result = talea_filter(items, type(stmt.condition).__name__, needle)
  env_bind_value(env, stmt.destination.name, result)


def eval_arithmetic(stmt: ArithmeticStatement, env: Dict, context: Dict) -> None:
  target_name = identifier_name(stmt.target)
  if target_name is None:
    raise TypeMismatch(f"{stmt.op.value} target must be a variable name")
  target = env_lookup_value(env, target_name)
  operand = eval_expression(stmt.value, env)
  result = talea_arithmetic(stmt.op.value, target, operand)
  destination = stmt.destination.name if stmt.destination is not None else target_name
  env_bind_value(env, destination, result)


def eval_summarize(stmt: SummarizeStatement, env: Dict, context: Dict) -> None:
  source = eval_expression(stmt.source, env)
  require_backend(context, R, "summarize")
  numbers = extract_numbers(source)
  summary = context['backends'].summarize(numbers)
  env_bind_value(env, stmt.destination.name, make_string(summary))


COMMAND_USAGE: Dict[str, str] = {
    "use": "use <python|r>                           enable a backend",
    "load": 'load "<path>" as <name>                  read a text file',
    "save": 'save <value> to "<path>"                 write a value to a file',
    "print": "print <value>                            show a value",
    "define": "define <name> as <value>                 bind a variable",
    "tokenize": "tokenize <text> as <name>                split on whitespace",
    "count": "count <words|tokens|characters|lines> in <value> as <name>",
    "tag": "tag <text> with <pos|ner> as <name>      needs 'use python'",
    "lemmatize": "lemmatize <text> as <name>               needs 'use python'",
    "filter": "filter <list> <containing|starting_with|ending_with> <text> as <name>",
    "summarize": "summarize <list> as <name>               needs 'use r'",
    "add": "add <value> to <name> [as <name>]",
    "subtract": "subtract <value> from <name> [as <name>]",
    "multiply": "multiply <name> by <value> [as <name>]",
    "divide": "divide <name> by <value> [as <name>]",
    "help": "help [<command>]                         show this help",
    "exit": "exit | quit                              end the session",
}


def eval_help(stmt: HelpStatement, env: Dict, context: Dict) -> None:
  if stmt.topic is not None and stmt.topic in COMMAND_USAGE:
    print(COMMAND_USAGE[stmt.topic])
    return
  print("Commands:")
  for usage in COMMAND_USAGE.values():
    print(f"  {usage}")


STATEMENT_EVALUATORS: Dict[type, Callable[[Any, Dict, Dict], None]] = {
    UseStatement: eval_use,
    LoadStatement: eval_load,
    SaveStatement: eval_save,
    PrintStatement: eval_print,
    DefineStatement: eval_define,
    TokenizeStatement: eval_tokenize,
    CountStatement: eval_count,
    TagStatement: eval_tag,
    LemmatizeStatement: eval_lemmatize,
    FilterStatement: eval_filter,
    ArithmeticStatement: eval_arithmetic,
    SummarizeStatement: eval_summarize,
    HelpStatement: eval_help,
}


def eval_statement(stmt: Statement, env: Dict, context: Dict) -> None:
  """
  Execute one statement to completion.
  Expressions are resolved and preconditions checked before any binding,
  so a failing statement leaves its destination untouched.
  """
  if context['debug']:
    print(f"Evaluating: {type(stmt).__name__}")

  evaluator = STATEMENT_EVALUATORS.get(type(stmt))
  if evaluator is None:
    raise TaleaRuntimeError(f"No evaluator for statement {type(stmt).__name__}")
  evaluator(stmt, env, context)


def eval_program(statements: List[Statement], env: Dict, context: Dict) -> Dict:
  """Execute statements in order, stopping at the first failure"""
  for stmt in statements:
    eval_statement(stmt, env, context)
  return env


# ============================================================================
# SESSION
# ============================================================================

class TaleaInterpreter:
  """One session: owns the environment and the enabled-backend set"""

  def __init__(self, debug: bool = False, backends: Optional[BackendRegistry] = None):
    self.debug = debug
    self.env = make_runtime_env()
    self.context = make_execution_context(backends, debug)
    self.parser = create_parser(debug)

  @property
  def bindings(self) -> Dict[str, Dict]:
    return self.env['bindings']

  @property
  def active_backends(self) -> Set[str]:
    return self.context['active_backends']

  def lookup(self, name: str) -> Dict:
    return env_lookup_value(self.env, name)

  def execute(self, statements: List[Statement]) -> None:
    eval_program(statements, self.env, self.context)

  def run(self, text: str) -> None:
    """Parse and execute one line of commands"""
    self.execute(self.parser.parse_string(text))


# ============================================================================
# FACTORY FUNCTIONS
# ============================================================================

def create_interpreter(debug: bool = False, backends: Optional[BackendRegistry] = None) -> TaleaInterpreter:
  """Create a fresh interpreter session"""
  return TaleaInterpreter(debug=debug, backends=backends)


def create_debug_interpreter() -> TaleaInterpreter:
  """Create an interpreter session with debug output"""
  return create_interpreter(debug=True)
