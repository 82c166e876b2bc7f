"""
Utilities module for the Talea interpreter
Contains common helper functions to reduce code duplication
"""

from typing import Any, Dict, Optional

from error_handling import TypeMismatch
from parsing import Identifier


INT64_MIN = -(2 ** 63)
INT64_MAX = 2 ** 63 - 1


# ==================== TYPE CHECKING UTILITIES ====================

def is_value_dict(val: Any) -> bool:
  """
  Check if value is a wrapped value dict

  Args:
    val: Value to check

  Returns:
    True if val is a dict with 'type' and 'value' keys
  """
  return isinstance(val, dict) and 'type' in val and 'value' in val


def value_kind(val: Any) -> str:
  """Kind name of a runtime value, for error messages"""
  if is_value_dict(val):
    return val['type']
  return type(val).__name__


def expect_kind(val: Dict, kind: str, construct: str) -> Any:
  """
  Return the payload of val if it has the expected kind

  Args:
    val: Runtime value
    kind: Required value kind (e.g. "String")
    construct: What is being checked, used in the error message

  Raises:
    TypeMismatch: if the kinds differ
  """
  if not is_value_dict(val) or val['type'] != kind:
    raise TypeMismatch(f"{construct} must be a {kind}, got {value_kind(val)}")
  return val['value']


# ==================== NUMERIC UTILITIES ====================

def check_int64(n: int) -> bool:
  """True if n fits a signed 64-bit integer"""
  return INT64_MIN <= n <= INT64_MAX


# ==================== SYNTAX UTILITIES ====================

def identifier_name(expr: Any) -> Optional[str]:
  """
  Variable name of an identifier expression, or None for anything else

  Examples:
    identifier_name(Identifier("x")) -> "x"
    identifier_name(StringLiteral("x")) -> None
  """
  if isinstance(expr, Identifier):
    return expr.name
  return None


def truncate(text: str, width: int = 60) -> str:
  """Shorten text for one-line displays"""
  text = text.replace('\n', ' ')
  if len(text) > width:
    return text[:width - 3] + "..."
  return text
