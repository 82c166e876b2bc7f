"""
Error handling for Talea with single-line messages
Error taxonomy for every pipeline stage plus context formatting helpers
"""

from typing import List, Optional, Dict


# ============================================================================
# DATA STRUCTURES (Immutable Dictionaries)
# ============================================================================

def make_parse_error(
    message: str,
    column: int = 0,
    expected: Optional[List[str]] = None,
    got: Optional[str] = None,
) -> Dict:
    """Create an immutable parse error structure"""
    return {
        'message': message,
        'column': column,
        'expected': expected or [],
        'got': got,
    }


def format_parse_error(error: Dict) -> str:
    """Format parse error as a single line"""
    error_msg = error['message']
    if error['column']:
        error_msg = f"column {error['column']}: {error_msg}"
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
        if i == line_num - 1:  # Error line
            context_parts.append(f"{line_prefix}{lines[i]}")
            context_parts.append(f"{'':6}{' ' * (col_num - 1)}^ Error here")
        else:
            context_parts.append(f"{line_prefix}{lines[i]}")

    return '\n'.join(context_parts)


def format_error_line(error: Exception) -> str:
    """Render any Talea error as the one line shown to the user"""
    if isinstance(error, TaleaParseError):
        return f"Parse error: {error}"
    if isinstance(error, TaleaError):
        return f"Runtime error [{error.kind}]: {error}"
    return f"Unexpected error: {error}"


# ============================================================================
# EXCEPTION CLASSES
# ============================================================================

class TaleaError(Exception):
    """Base class for every error a Talea command can raise"""
    kind = "TaleaError"

    def __init__(self, message: str):
        self.message = message
        super().__init__(message)


class TaleaParseError(TaleaError):
    """Expected-vs-found mismatch or malformed statement"""
    kind = "ParseError"

    def __init__(self, message: str, column: int = 0,
                 expected: Optional[List[str]] = None, got: Optional[str] = None):
        self.column = column
        self.expected = expected or []
        self.got = got
        super().__init__(message)

    def __str__(self) -> str:
        error_dict = make_parse_error(self.message, self.column, self.expected, self.got)
        return format_parse_error(error_dict)


class TaleaRuntimeError(TaleaError):
    """Failure while executing a statement"""
    kind = "RuntimeError"


class VariableNotFound(TaleaRuntimeError):
    kind = "VariableNotFound"

    def __init__(self, name: str):
        self.name = name
        super().__init__(f"Variable '{name}' not found.")


class TypeMismatch(TaleaRuntimeError):
    kind = "TypeMismatch"


class UnsupportedCombination(TaleaRuntimeError):
    kind = "UnsupportedCombination"


class BackendNotEnabled(TaleaRuntimeError):
    kind = "BackendNotEnabled"

    def __init__(self, backend: str, verb: str):
        self.backend = backend
        self.verb = verb
        super().__init__(
            f"'{verb}' requires the {backend} backend; enable it with 'use {backend}'")


class DivisionByZero(TaleaRuntimeError):
    kind = "DivisionByZero"


class NumericOverflow(TaleaRuntimeError):
    kind = "NumericOverflow"


class TaleaIOError(TaleaRuntimeError):
    """Filesystem failure with the offending path attached"""
    kind = "IOError"

    def __init__(self, message: str, path: str):
        self.path = path
        super().__init__(message)


class ExternalBackendError(TaleaRuntimeError):
    """Failure reported by an NLP or statistics provider"""
    kind = "ExternalBackendError"

    def __init__(self, message: str, backend: Optional[str] = None):
        self.backend = backend
        super().__init__(message)


class ExitRequested(Exception):
    """Raised by the parser when it reaches 'exit' or 'quit'"""
    pass
