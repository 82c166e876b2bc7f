"""
Tokenizer tests for Talea
Synonym collapsing, literal scanning and never-fail behaviour
"""

import pytest
from parsing import TaleaTokenizer, Token, tokenize, EOF, IDENTIFIER, ILLEGAL, NUMBER, STRING


def kinds(tokens):
  return [t.type for t in tokens]


class TestSynonyms:
  """Surface spellings collapse to one canonical token"""

  @pytest.mark.parametrize("word", ["load", "read", "open", "LOAD", "Read", "oPeN"])
  def test_load_synonyms(self, word):
    assert tokenize(word) == [Token("LOAD"), Token(EOF)]

  def test_synonym_groups(self):
    groups = {
        "SAVE": ["save", "write", "export"],
        "PRINT": ["print", "show", "display", "view"],
        "COUNT": ["count", "tally", "measure", "calculate"],
        "TOKENIZE": ["tokenize", "split", "segment"],
        "FILTER": ["filter", "keep"],
        "REMOVE": ["remove", "exclude"],
        "DEFINE": ["define", "let", "create", "set", "assign"],
        "EXIT": ["exit", "quit"],
        "TYPES": ["types", "uniques"],
      }
    for canonical, words in groups.items():
      for word in words:
        assert tokenize(word)[0] == Token(canonical), word

  def test_identical_tokens_ignore_span(self):
    first = tokenize("read")[0]
    second = tokenize("   open")[0]
    assert first == second
    assert first.span.column == 1
    assert second.span.column == 4

  def test_keywords_and_units(self):
    assert kinds(tokenize("as to from in with by starting_with pos NER words")) == [
        "AS", "TO", "FROM", "IN", "WITH", "BY", "STARTING_WITH", "POS", "NER", "WORDS", EOF
    ]


class TestLiterals:
  """Identifiers, strings and numbers"""

  def test_identifier_keeps_case(self):
    assert tokenize("MyDoc")[0] == Token(IDENTIFIER, "MyDoc")

  def test_identifier_with_digits_and_underscore(self):
    assert tokenize("doc_2")[0] == Token(IDENTIFIER, "doc_2")

  def test_string_literal(self):
    assert tokenize('"hello world"')[0] == Token(STRING, "hello world")

  def test_string_keeps_tabs_and_newlines(self):
    assert tokenize('"a\tb\nc"')[0] == Token(STRING, "a\tb\nc")

  def test_unterminated_string_takes_rest(self):
    assert tokenize('print "abc def') == [Token("PRINT"), Token(STRING, "abc def"), Token(EOF)]

  def test_empty_string(self):
    assert tokenize('""')[0] == Token(STRING, "")

  def test_number(self):
    assert tokenize("42")[0] == Token(NUMBER, 42)

  def test_number_too_large_becomes_zero(self):
    assert tokenize("99999999999999999999")[0] == Token(NUMBER, 0)

  def test_number_then_word(self):
    assert tokenize("3abc") == [Token(NUMBER, 3), Token(IDENTIFIER, "abc"), Token(EOF)]


class TestNeverFail:
  """Odd input is tokenized, never rejected"""

  def test_illegal_characters(self):
    assert tokenize("x + ;") == [
        Token(IDENTIFIER, "x"), Token(ILLEGAL, "+"), Token(ILLEGAL, ";"), Token(EOF)
    ]

  def test_leading_underscore_is_illegal(self):
    assert tokenize("_x") == [Token(ILLEGAL, "_"), Token(IDENTIFIER, "x"), Token(EOF)]

  def test_empty_input(self):
    assert tokenize("") == [Token(EOF)]

  def test_whitespace_only(self):
    assert tokenize(" \t\n  ") == [Token(EOF)]

  def test_unicode_white_space_separates(self):
    assert tokenize("a\u00a0b\u3000c") == [
        Token(IDENTIFIER, "a"), Token(IDENTIFIER, "b"), Token(IDENTIFIER, "c"), Token(EOF)
    ]

  def test_information_separator_is_illegal(self):
    assert tokenize("a\x1cb") == [
        Token(IDENTIFIER, "a"), Token(ILLEGAL, "\x1c"), Token(IDENTIFIER, "b"), Token(EOF)
    ]

  def test_single_eof_at_end(self):
    tokens = TaleaTokenizer().tokenize('load "f.txt" as doc')
    assert kinds(tokens) == ["LOAD", STRING, "AS", IDENTIFIER, EOF]
    assert kinds(tokens).count(EOF) == 1
