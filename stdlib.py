"""
Talea Standard Library
Runtime values and the built-in text operations behind each command
Pure functional style using immutable dictionaries
"""

from typing import Dict, Callable, Any, List
import re

from error_handling import (
  DivisionByZero,
  NumericOverflow,
  TypeMismatch,
  UnsupportedCombination,
)
from parsing import WHITESPACE
from utilities import check_int64, value_kind


# Value kinds
STRING = "String"
NUMBER = "Number"
LIST = "List"
TUPLE = "Tuple"
UNIT = "Unit"
NULL = "Null"


# ============================================================================
# VALUE CONSTRUCTORS
# ============================================================================

def make_value(value: Any, type_name: str) -> Dict:
  """Create an immutable runtime value"""
  return {
      'value': value,
      'type': type_name
  }


def make_string(text: str) -> Dict:
  return make_value(text, STRING)


def make_number(n: int) -> Dict:
  return make_value(n, NUMBER)


def make_list(items: List[Dict]) -> Dict:
  return make_value(list(items), LIST)


def make_tuple(items) -> Dict:
  return make_value(tuple(items), TUPLE)


def make_unit(unit: str) -> Dict:
  return make_value(unit, UNIT)


def make_null() -> Dict:
  return make_value(None, NULL)


# ============================================================================
# STRINGIFY
# ============================================================================

def show_element(value: Dict) -> str:
  """Render a value nested inside a list or tuple"""
  if value['type'] == STRING:
    return f"'{value['value']}'"
  return show_value(value)


def show_value(value: Dict) -> str:
  """Canonical text form used by print and save"""
  kind = value['type']
  if kind == STRING:
    return value['value']
  elif kind == NUMBER:
    return str(value['value'])
  elif kind == LIST:
    return "[" + ", ".join(show_element(v) for v in value['value']) + "]"
  elif kind == TUPLE:
    return "(" + ", ".join(show_element(v) for v in value['value']) + ")"
  elif kind == UNIT:
    return f"<unit {value['value'].lower()}>"
  elif kind == NULL:
    return "null"
  else:
    raise TypeMismatch(f"Cannot render value of kind {kind}")


def talea_print(value: Dict) -> Dict:
  """Print a value to stdout"""
  print(show_value(value))
  return make_null()


# ============================================================================
# TEXT OPERATIONS
# ============================================================================

WORD_PATTERN = re.compile(f"[^{re.escape(WHITESPACE)}]+")


def talea_tokenize(text: Dict) -> Dict:
  """Split a string on runs of whitespace"""
  if text['type'] != STRING:
    raise TypeMismatch(f"tokenize expects a String, got {value_kind(text)}")
  return make_list([make_string(piece) for piece in WORD_PATTERN.findall(text['value'])])


def count_lines(text: str) -> int:
  """Newline-delimited segments; a trailing newline opens no new segment"""
  segments = text.split('\n')
  if segments[-1] == '':
    segments.pop()
  return len(segments)


def count_list_items(unit: str, value: Dict) -> Dict:
  return make_number(len(value['value']))


def count_string_characters(unit: str, value: Dict) -> Dict:
  return make_number(len(value['value']))


def count_string_lines(unit: str, value: Dict) -> Dict:
  return make_number(count_lines(value['value']))


def count_item_characters(unit: str, value: Dict) -> Dict:
  """Per-item character counts; non-strings count as 0"""
  return make_list([
      make_number(len(item['value']) if item['type'] == STRING else 0)
      for item in value['value']
  ])


COUNT_DISPATCH: Dict[tuple, Callable[[str, Dict], Dict]] = {
    ("WORDS", LIST): count_list_items,
    ("TOKENS", LIST): count_list_items,
    ("CHARACTERS", STRING): count_string_characters,
    ("LINES", STRING): count_string_lines,
    ("CHARACTERS", LIST): count_item_characters,
}


def talea_count(unit: str, value: Dict) -> Dict:
  """Count units in a value according to the (unit, kind) table"""
  counter = COUNT_DISPATCH.get((unit, value['type']))
  if counter is None:
    raise UnsupportedCombination(
        f"Cannot count {unit.lower()} in a value of kind {value_kind(value)}")
  return counter(unit, value)


FILTER_PREDICATES: Dict[str, Callable[[str, str], bool]] = {
    "Containing": lambda item, needle: needle in item,
    "StartingWith": lambda item, needle: item.startswith(needle),
    "EndingWith": lambda item, needle: item.endswith(needle),
}


def talea_filter(items: Dict, condition: str, needle: Dict) -> Dict:
  """Keep string items matching the condition; other kinds are dropped"""
  if items['type'] != LIST:
    raise TypeMismatch(f"filter expects a List, got {value_kind(items)}")
  if needle['type'] != STRING:
    raise TypeMismatch(f"filter condition expects a String, got {value_kind(needle)}")
  predicate = FILTER_PREDICATES[condition]
  return make_list([
      item for item in items['value']
      if item['type'] == STRING and predicate(item['value'], needle['value'])
  ])


def extract_numbers(items: Dict) -> List[int]:
  """Numbers of a list, in order; other kinds are ignored"""
  if items['type'] != LIST:
    raise TypeMismatch(f"summarize expects a List, got {value_kind(items)}")
  return [item['value'] for item in items['value'] if item['type'] == NUMBER]


def join_text(source: Dict, verb: str) -> str:
  """Text handed to an NLP backend: a string, or list strings joined by spaces"""
  if source['type'] == STRING:
    return source['value']
  if source['type'] == LIST:
    return " ".join(item['value'] for item in source['value'] if item['type'] == STRING)
  raise TypeMismatch(f"{verb} expects a String or List, got {value_kind(source)}")


# ============================================================================
# ARITHMETIC
# ============================================================================

def talea_add(target: int, operand: int) -> int:
  return target + operand


def talea_sub(target: int, operand: int) -> int:
  return target - operand


def talea_mul(target: int, operand: int) -> int:
  return target * operand


def talea_div(target: int, operand: int) -> int:
  """Integer division truncating toward zero"""
  if operand == 0:
    raise DivisionByZero("Cannot divide by zero")
  quotient = abs(target) // abs(operand)
  return -quotient if (target < 0) != (operand < 0) else quotient


BUILTIN_OPERATORS: Dict[str, Callable[[int, int], int]] = {
    'add': talea_add,
    'subtract': talea_sub,
    'multiply': talea_mul,
    'divide': talea_div,
}


def talea_arithmetic(op: str, target: Dict, operand: Dict) -> Dict:
  """Apply op to two Numbers, staying inside the signed 64-bit range"""
  if target['type'] != NUMBER:
    raise TypeMismatch(f"{op} target must be a Number, got {value_kind(target)}")
  if operand['type'] != NUMBER:
    raise TypeMismatch(f"{op} operand must be a Number, got {value_kind(operand)}")
  result = BUILTIN_OPERATORS[op](target['value'], operand['value'])
  if not check_int64(result):
    raise NumericOverflow(f"Result of {op} does not fit in a 64-bit integer")
  return make_number(result)
