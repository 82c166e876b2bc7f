"""
Talea Command Language Parser
Tokenizer, statement tree and recursive-descent parser for Talea commands
"""

from typing import List, Dict, Any, Optional, Union
from dataclasses import dataclass, field
from enum import Enum

from pyparsing import ParseResults, Regex, Word, col, lineno, nums

from error_handling import TaleaParseError, ExitRequested


@dataclass(frozen=True)
class SourceSpan:
    """Source location of a token, for diagnostics only"""
    line: int
    column: int
    text: str = ""

    def __str__(self) -> str:
        return f"line {self.line}, column {self.column}"


@dataclass(frozen=True)
class Token:
    """Talea token; the span never takes part in equality"""
    type: str
    value: Any = None
    span: Optional[SourceSpan] = field(default=None, compare=False, repr=False)

    def __str__(self) -> str:
        if self.value is None:
            return self.type
        return f"{self.type}({self.value!r})"


# ============================================================================
# TOKEN MODEL
# ============================================================================

# Literal and sentinel kinds
IDENTIFIER = "IDENTIFIER"
STRING = "STRING"
NUMBER = "NUMBER"
EOF = "EOF"
ILLEGAL = "ILLEGAL"

LITERAL_TYPES = frozenset({IDENTIFIER, STRING, NUMBER})

# Surface spelling -> canonical kind. Lookups are done on the lowered text.
SYNONYMS: Dict[str, str] = {
    # Verbs
    "load": "LOAD", "read": "LOAD", "open": "LOAD",
    "fetch": "FETCH", "download": "FETCH", "connect": "CONNECT",
    "save": "SAVE", "write": "SAVE", "export": "SAVE",
    "print": "PRINT", "show": "PRINT", "display": "PRINT", "view": "PRINT",
    "inspect": "INSPECT", "preview": "INSPECT", "head": "HEAD", "tail": "TAIL",
    "define": "DEFINE", "let": "DEFINE", "create": "DEFINE", "set": "DEFINE", "assign": "DEFINE",
    "clear": "RESET", "reset": "RESET",
    "tokenize": "TOKENIZE", "split": "TOKENIZE", "segment": "TOKENIZE",
    "join": "JOIN", "merge": "JOIN", "concatenate": "JOIN",
    "replace": "REPLACE", "substitute": "REPLACE",
    "clean": "CLEAN", "normalize": "NORMALIZE", "stem": "STEM", "lemmatize": "LEMMATIZE",
    "lowercase": "LOWERCASE", "uppercase": "UPPERCASE",
    "count": "COUNT", "tally": "COUNT", "measure": "COUNT", "calculate": "COUNT",
    "get": "GET", "rank": "RANK",
    "find": "FIND", "search": "FIND", "locate": "FIND", "extract": "FIND", "match": "FIND",
    "filter": "FILTER", "keep": "FILTER",
    "remove": "REMOVE", "exclude": "REMOVE", "slice": "SLICE",
    "tag": "TAG", "annotate": "TAG",
    "concordance": "CONCORDANCE", "collocate": "COLLOCATE", "frequency": "FREQUENCY",
    "cluster": "CLUSTER", "correlate": "CORRELATE", "compare": "COMPARE",
    "summarize": "SUMMARIZE", "sort": "SORT", "order": "SORT", "group": "GROUP",
    "add": "ADD", "subtract": "SUBTRACT", "multiply": "MULTIPLY", "divide": "DIVIDE",
    "help": "HELP", "docs": "HELP", "history": "HISTORY",
    "run": "RUN", "execute": "RUN", "exit": "EXIT", "quit": "EXIT",
    "use": "USE", "python": "PYTHON", "r": "R",
    # Units, targets, concepts
    "words": "WORDS", "sentences": "SENTENCES", "lines": "LINES",
    "paragraphs": "PARAGRAPHS", "characters": "CHARACTERS", "tokens": "TOKENS",
    "types": "TYPES", "uniques": "TYPES", "length": "LENGTH",
    "diversity": "DIVERSITY", "readability": "READABILITY", "stopwords": "STOPWORDS",
    "punctuation": "PUNCTUATION", "numbers": "NUMBERS", "whitespace": "WHITESPACE",
    "pattern": "PATTERN", "regex": "REGEX", "entities": "ENTITIES",
    "pos": "POS", "ner": "NER", "bigrams": "BIGRAMS", "trigrams": "TRIGRAMS",
    "ngrams": "NGRAMS", "url": "URL", "json": "JSON", "csv": "CSV", "xml": "XML",
    "first": "FIRST", "last": "LAST", "sample": "SAMPLE",
    "distribution": "DISTRIBUTION", "kwic": "KWIC",
    # Keywords and prepositions
    "as": "AS", "to": "TO", "from": "FROM", "in": "IN", "into": "INTO",
    "on": "ON", "by": "BY", "with": "WITH",
    "containing": "CONTAINING", "starting_with": "STARTING_WITH", "ending_with": "ENDING_WITH",
    "ascending": "ASCENDING", "descending": "DESCENDING", "top": "TOP", "bottom": "BOTTOM",
}

# Tokens that parse as a unit argument rather than a variable reference
UNIT_TYPES = frozenset({
    "WORDS", "SENTENCES", "LINES", "PARAGRAPHS", "CHARACTERS", "TOKENS",
    "TYPES", "LENGTH", "POS", "NER", "ENTITIES",
})

BACKEND_TOKENS = {"PYTHON": "python", "R": "r"}

CONDITION_TYPES = ("CONTAINING", "STARTING_WITH", "ENDING_WITH")

I64_MAX = 2 ** 63 - 1


# ============================================================================
# STATEMENT TREE
# ============================================================================

@dataclass(frozen=True)
class Identifier:
    name: str


@dataclass(frozen=True)
class StringLiteral:
    value: str


@dataclass(frozen=True)
class NumberLiteral:
    value: int


@dataclass(frozen=True)
class UnitExpr:
    """A domain noun such as 'words' or 'pos' used as an argument"""
    unit: str


Expression = Union[Identifier, StringLiteral, NumberLiteral, UnitExpr]


@dataclass(frozen=True)
class Containing:
    operand: Expression


@dataclass(frozen=True)
class StartingWith:
    operand: Expression


@dataclass(frozen=True)
class EndingWith:
    operand: Expression


FilterCondition = Union[Containing, StartingWith, EndingWith]

CONDITION_CLASSES = {
    "CONTAINING": Containing,
    "STARTING_WITH": StartingWith,
    "ENDING_WITH": EndingWith,
}


class ArithmeticOp(Enum):
    ADD = "add"
    SUBTRACT = "subtract"
    MULTIPLY = "multiply"
    DIVIDE = "divide"


@dataclass(frozen=True)
class UseStatement:
    backend: str


@dataclass(frozen=True)
class LoadStatement:
    source: Expression
    alias: Identifier


@dataclass(frozen=True)
class SaveStatement:
    source: Expression
    destination: Expression


@dataclass(frozen=True)
class PrintStatement:
    expression: Expression


@dataclass(frozen=True)
class DefineStatement:
    name: Identifier
    value: Expression


@dataclass(frozen=True)
class TokenizeStatement:
    source: Expression
    destination: Identifier


@dataclass(frozen=True)
class CountStatement:
    unit: UnitExpr
    source: Expression
    destination: Identifier


@dataclass(frozen=True)
class TagStatement:
    source: Expression
    method: UnitExpr
    destination: Identifier


@dataclass(frozen=True)
class ArithmeticStatement:
    op: ArithmeticOp
    value: Expression
    target: Expression
    destination: Optional[Identifier] = None


@dataclass(frozen=True)
class LemmatizeStatement:
    source: Expression
    destination: Identifier


@dataclass(frozen=True)
class FilterStatement:
    source: Expression
    condition: FilterCondition
    destination: Identifier


@dataclass(frozen=True)
class SummarizeStatement:
    source: Expression
    destination: Identifier


@dataclass(frozen=True)
class HelpStatement:
    topic: Optional[str] = None


Statement = Union[
    UseStatement, LoadStatement, SaveStatement, PrintStatement, DefineStatement,
    TokenizeStatement, CountStatement, TagStatement, ArithmeticStatement,
    LemmatizeStatement, FilterStatement, SummarizeStatement, HelpStatement,
]


# ============================================================================
# TOKENIZER
# ============================================================================

# Unicode White_Space characters. str.isspace() also accepts the U+001C..U+001F
# separators, which are not white space and lex as ILLEGAL here.
WHITESPACE = "".join(
    chr(c) for c in range(0x3001) if chr(c).isspace() and not 0x1C <= c <= 0x1F)


class TaleaTokenizer:
    """Single-pass Talea tokenizer that never fails"""

    def __init__(self, debug: bool = False):
        self.debug = debug
        self._setup_token_patterns()

    def _setup_token_patterns(self):
        """Setup the scanner; alternatives are tried in priority order"""

        # A quote opens a string; an unterminated one takes the rest of the input
        string_literal = Regex(r'"[^"]*"?').set_parse_action(self._make_string)

        # Alphabetic start, then letters, digits and underscores
        word = Regex(r"[^\W\d_]\w*").set_parse_action(self._make_word)

        # Unsigned decimal integers (ASCII digits only)
        number = Word(nums).set_parse_action(self._make_number)

        # Anything else is one illegal character
        illegal = Regex(r"(?s).").set_parse_action(lambda t: Token(ILLEGAL, t[0]))

        self.lexeme = string_literal | word | number | illegal
        for element in (self.lexeme, string_literal, word, number, illegal):
            element.set_whitespace_chars(WHITESPACE)
        # Tabs inside string literals must survive scanning
        self.lexeme.parse_with_tabs()

    @staticmethod
    def _make_string(tokens: ParseResults) -> Token:
        text = tokens[0][1:]
        if text.endswith('"'):
            text = text[:-1]
        return Token(STRING, text)

    @staticmethod
    def _make_word(tokens: ParseResults) -> Token:
        text = tokens[0]
        canonical = SYNONYMS.get(text.lower())
        if canonical is None:
            return Token(IDENTIFIER, text)
        return Token(canonical)

    @staticmethod
    def _make_number(tokens: ParseResults) -> Token:
        value = int(tokens[0])
        if value > I64_MAX:
            value = 0
        return Token(NUMBER, value)

    def tokenize(self, text: str) -> List[Token]:
        """Tokenize one input; the result always ends with EOF"""
        tokens = []
        for result, start, end in self.lexeme.scan_string(text):
            token = result[0]
            span = SourceSpan(lineno(start, text), col(start, text), text[start:end])
            tokens.append(Token(token.type, token.value, span))

        end_span = SourceSpan(lineno(len(text), text), col(len(text), text))
        tokens.append(Token(EOF, None, end_span))

        if self.debug:
            print(f"Tokens: {' '.join(str(t) for t in tokens)}")
        return tokens


def tokenize(text: str) -> List[Token]:
    """Tokenize text with a default tokenizer"""
    return TaleaTokenizer().tokenize(text)


# ============================================================================
# RECURSIVE-DESCENT PARSER
# ============================================================================

class TaleaStatementParser:
    """Recursive-descent parser over one token sequence"""

    def __init__(self, tokens: List[Token]):
        self.tokens = tokens
        self.position = 0
        self._dispatch = {
            "USE": self.parse_use_statement,
            "LOAD": self.parse_load_statement,
            "SAVE": self.parse_save_statement,
            "PRINT": self.parse_print_statement,
            "DEFINE": self.parse_define_statement,
            "TOKENIZE": self.parse_tokenize_statement,
            "COUNT": self.parse_count_statement,
            "TAG": self.parse_tag_statement,
            "LEMMATIZE": self.parse_lemmatize_statement,
            "FILTER": self.parse_filter_statement,
            "SUMMARIZE": self.parse_summarize_statement,
            "HELP": self.parse_help_statement,
            "ADD": lambda: self.parse_arithmetic_statement(ArithmeticOp.ADD),
            "SUBTRACT": lambda: self.parse_arithmetic_statement(ArithmeticOp.SUBTRACT),
            "MULTIPLY": lambda: self.parse_arithmetic_statement(ArithmeticOp.MULTIPLY),
            "DIVIDE": lambda: self.parse_arithmetic_statement(ArithmeticOp.DIVIDE),
        }

    def parse(self) -> List[Statement]:
        statements = []
        while not self.is_at_end():
            statements.append(self.parse_statement())
        return statements

    def parse_statement(self) -> Statement:
        token = self.current_token()
        if token.type == "EXIT":
            raise ExitRequested()
        parse_func = self._dispatch.get(token.type)
        if parse_func is None:
            raise self.error(f"Unrecognized or unimplemented command: {token}")
        return parse_func()

    # Command parsers

    def parse_use_statement(self) -> UseStatement:
        self.advance()
        backend = BACKEND_TOKENS.get(self.current_token().type)
        if backend is None:
            raise self.error("Expected 'python' or 'r' after 'use'",
                             expected=["PYTHON", "R"])
        self.advance()
        return UseStatement(backend)

    def parse_load_statement(self) -> LoadStatement:
        self.advance()
        source = self.parse_expression()
        self.consume("AS")
        alias = self.parse_identifier_expression()
        return LoadStatement(source, alias)

    def parse_save_statement(self) -> SaveStatement:
        self.advance()
        source = self.parse_expression()
        self.consume("TO")
        destination = self.parse_expression()
        return SaveStatement(source, destination)

    def parse_print_statement(self) -> PrintStatement:
        self.advance()
        return PrintStatement(self.parse_expression())

    def parse_define_statement(self) -> DefineStatement:
        self.advance()
        name = self.parse_identifier_expression()
        self.consume("AS")
        value = self.parse_expression()
        return DefineStatement(name, value)

    def parse_tokenize_statement(self) -> TokenizeStatement:
        self.advance()
        source = self.parse_expression()
        self.consume("AS")
        return TokenizeStatement(source, self.parse_identifier_expression())

    def parse_count_statement(self) -> CountStatement:
        self.advance()
        unit = self.parse_unit_expression()
        self.consume("IN")
        source = self.parse_expression()
        self.consume("AS")
        return CountStatement(unit, source, self.parse_identifier_expression())

    def parse_tag_statement(self) -> TagStatement:
        self.advance()
        source = self.parse_expression()
        self.consume("WITH")
        method = self.parse_unit_expression()
        self.consume("AS")
        return TagStatement(source, method, self.parse_identifier_expression())

    def parse_lemmatize_statement(self) -> LemmatizeStatement:
        self.advance()
        source = self.parse_expression()
        self.consume("AS")
        return LemmatizeStatement(source, self.parse_identifier_expression())

    def parse_summarize_statement(self) -> SummarizeStatement:
        self.advance()
        source = self.parse_expression()
        self.consume("AS")
        return SummarizeStatement(source, self.parse_identifier_expression())

    def parse_filter_statement(self) -> FilterStatement:
        self.advance()
        source = self.parse_expression()
        condition_class = CONDITION_CLASSES.get(self.current_token().type)
        if condition_class is None:
            raise self.error("Expected a filter condition",
                             expected=list(CONDITION_TYPES))
        self.advance()
        condition = condition_class(self.parse_expression())
        self.consume("AS")
        return FilterStatement(source, condition, self.parse_identifier_expression())

    def parse_arithmetic_statement(self, op: ArithmeticOp) -> ArithmeticStatement:
        self.advance()
        if op in (ArithmeticOp.ADD, ArithmeticOp.SUBTRACT):
            value = self.parse_expression()
            if self.current_token().type not in ("TO", "FROM"):
                raise self.error("Expected 'to' or 'from'", expected=["TO", "FROM"])
            self.advance()
            target = self.parse_expression()
        else:
            target = self.parse_expression()
            self.consume("BY")
            value = self.parse_expression()

        destination = None
        if self.current_token().type == "AS":
            self.advance()
            destination = self.parse_identifier_expression()
        return ArithmeticStatement(op, value, target, destination)

    def parse_help_statement(self) -> HelpStatement:
        self.advance()
        token = self.current_token()
        if token.type in self._dispatch or token.type == "EXIT":
            self.advance()
            return HelpStatement(token.type.lower())
        return HelpStatement()

    # Expression parsing

    def parse_expression(self) -> Expression:
        token = self.current_token()
        if token.type in UNIT_TYPES:
            return self.parse_unit_expression()
        if token.type == STRING:
            self.advance()
            return StringLiteral(token.value)
        if token.type == IDENTIFIER:
            self.advance()
            return Identifier(token.value)
        if token.type == NUMBER:
            self.advance()
            return NumberLiteral(token.value)
        return self.parse_keyword_as_identifier(token)

    def parse_identifier_expression(self) -> Identifier:
        token = self.current_token()
        if token.type == IDENTIFIER:
            self.advance()
            return Identifier(token.value)
        return self.parse_keyword_as_identifier(token)

    def parse_unit_expression(self) -> UnitExpr:
        token = self.current_token()
        if token.type not in UNIT_TYPES:
            raise self.error(f"Expected a unit (like words, ner, etc), but found {token}",
                             expected=["unit"])
        self.advance()
        return UnitExpr(token.type)

    def parse_keyword_as_identifier(self, token: Token) -> Identifier:
        """A reserved word standing where a name is expected becomes that name"""
        if token.type in (EOF, ILLEGAL) or token.type in LITERAL_TYPES:
            what = "end of input" if token.type == EOF else str(token)
            raise self.error(f"Expected a variable name or expression, but found {what}",
                             expected=[IDENTIFIER])
        self.advance()
        return Identifier(token.type.lower())

    # Token cursor

    def current_token(self) -> Token:
        if self.position < len(self.tokens):
            return self.tokens[self.position]
        return Token(EOF)

    def advance(self):
        if not self.is_at_end():
            self.position += 1

    def is_at_end(self) -> bool:
        return self.current_token().type == EOF

    def consume(self, expected: str) -> Token:
        """Match the current token by kind only and step past it"""
        token = self.current_token()
        if token.type != expected:
            raise self.error(f"Expected {expected}, found {token}", expected=[expected])
        self.advance()
        return token

    def error(self, message: str, expected: Optional[List[str]] = None) -> TaleaParseError:
        token = self.current_token()
        column = token.span.column if token.span else 0
        return TaleaParseError(message, column, expected, str(token))


class TaleaParser:
    """Main Talea parser combining tokenizer and statement parser"""

    def __init__(self, debug: bool = False):
        self.debug = debug
        self.tokenizer = TaleaTokenizer(debug)

    def tokenize(self, text: str) -> List[Token]:
        return self.tokenizer.tokenize(text)

    def parse_tokens(self, tokens: List[Token]) -> List[Statement]:
        statements = TaleaStatementParser(tokens).parse()
        if self.debug:
            for statement in statements:
                print(f"Parsed: {statement}")
        return statements

    def parse_string(self, text: str) -> List[Statement]:
        """Parse one line (or batch) of Talea commands"""
        return self.parse_tokens(self.tokenize(text))


def parse(tokens: List[Token]) -> List[Statement]:
    """Parse a token sequence into statements"""
    return TaleaStatementParser(tokens).parse()


# Factory functions for creating parsers
def create_parser(debug: bool = False) -> TaleaParser:
    """Create a Talea parser"""
    return TaleaParser(debug=debug)


def create_debug_parser() -> TaleaParser:
    """Create a Talea parser with debug enabled"""
    return TaleaParser(debug=True)


def pretty_print_statement(statement: Statement, indent: int = 0) -> str:
    """Pretty print a statement tree for debugging"""
    pad = "  " * indent
    result = f"{pad}{type(statement).__name__}\n"
    for name, value in vars(statement).items():
        if hasattr(value, "__dataclass_fields__"):
            result += f"{pad}  {name}:\n"
            result += pretty_print_statement(value, indent + 2)
        elif isinstance(value, Enum):
            result += f"{pad}  {name}: {value.value}\n"
        else:
            result += f"{pad}  {name}: {value!r}\n"
    return result
