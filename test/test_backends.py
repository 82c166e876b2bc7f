"""
Backend tests for Talea
Capability gating, lazy provider start-up and error wrapping across the actor boundary
"""

import pytest
from conftest import StubNLP
from backends import (
  BackendRegistry,
  NLPCapability,
  StatisticsCapability,
  SummaryStatisticsCapability,
)
from error_handling import (
  BackendNotEnabled,
  ExternalBackendError,
  TypeMismatch,
  UnsupportedCombination,
  VariableNotFound,
)
from interpreter import create_interpreter
from stdlib import make_list, make_number, make_string, make_tuple


def pairs(*items):
  return make_list([make_tuple([make_string(a), make_string(b)]) for a, b in items])


class BrokenNLP(NLPCapability):
  def tag(self, text, scheme):
    raise RuntimeError("model file missing")

  def lemmatize(self, text):
    return None


class UnavailableStatistics(StatisticsCapability):
  def __init__(self):
    raise ExternalBackendError("statistics engine is not installed", "r")

  def summarize(self, numbers):
    return ""


@pytest.fixture
def broken_interpreter():
  registry = BackendRegistry({"python": BrokenNLP, "r": UnavailableStatistics})
  yield create_interpreter(backends=registry)
  registry.terminate_all()


class TestGating:
  """NLP and statistics commands need their backend enabled first"""

  def test_tag_before_use(self, interpreter):
    interpreter.run('define doc as "Dogs bark"')
    with pytest.raises(BackendNotEnabled) as exc_info:
      interpreter.run("tag doc with pos as tags")
    assert exc_info.value.backend == "python"
    assert "use python" in str(exc_info.value)
    assert "tags" not in interpreter.bindings

  def test_tag_after_use(self, interpreter):
    interpreter.run('define doc as "Dogs bark" use python tag doc with pos as tags')
    assert interpreter.lookup("tags") == pairs(("Dogs", "NN"), ("bark", "NN"))

  def test_use_is_idempotent(self, interpreter):
    interpreter.run("use python use python")
    assert interpreter.active_backends == {"python"}

  def test_python_does_not_enable_r(self, interpreter):
    interpreter.run("use python")
    interpreter.bindings["nums"] = make_list([make_number(1)])
    with pytest.raises(BackendNotEnabled):
      interpreter.run("summarize nums as report")

  def test_lemmatize_before_use(self, interpreter):
    with pytest.raises(BackendNotEnabled):
      interpreter.run('lemmatize "cats" as lemmas')

  def test_source_resolved_before_backend_check(self, interpreter):
    with pytest.raises(VariableNotFound):
      interpreter.run("tag missing with pos as tags")


class TestNLP:
  def test_ner(self, interpreter):
    interpreter.run('use python tag "Ada met Alan" with ner as people')
    assert interpreter.lookup("people") == pairs(("Ada", "PERSON"), ("Alan", "PERSON"))

  def test_tag_list_source(self, interpreter):
    interpreter.run('use python tokenize "cats  sleep" as t tag t with pos as tags')
    assert interpreter.lookup("tags") == pairs(("cats", "NN"), ("sleep", "NN"))

  def test_unsupported_tag_method(self, interpreter):
    interpreter.run("use python")
    with pytest.raises(UnsupportedCombination):
      interpreter.run('tag "a b" with words as tags')

  def test_tag_number_source(self, interpreter):
    interpreter.run("use python")
    with pytest.raises(TypeMismatch):
      interpreter.run("tag 5 with pos as tags")

  def test_lemmatize(self, interpreter):
    interpreter.run('use python lemmatize "cats dogs run" as lemmas')
    assert interpreter.lookup("lemmas") == make_list([
        make_string("cat"), make_string("dog"), make_string("run")
    ])

  def test_provider_starts_on_first_call(self, interpreter):
    interpreter.run("use python")
    assert StubNLP.instances == 0
    interpreter.run('tag "a" with pos as first tag "b" with pos as second')
    assert StubNLP.instances == 1


class TestStatistics:
  def test_summarize_numbers_only(self, interpreter):
    interpreter.bindings["nums"] = make_list([make_number(3), make_string("x"), make_number(4)])
    interpreter.run("use r summarize nums as report")
    assert interpreter.lookup("report") == make_string("n=2 sum=7")

  def test_summarize_requires_list(self, interpreter):
    interpreter.run("use r")
    with pytest.raises(TypeMismatch):
      interpreter.run('summarize "1 2 3" as report')

  def test_summary_table(self):
    report = SummaryStatisticsCapability().summarize([5, 1, 4, 2, 3])
    header, row = report.split("\n")
    assert header.split() == ["Min.", "1st", "Qu.", "Median", "Mean", "3rd", "Qu.", "Max."]
    assert row.split() == ["1.00", "2.00", "3.00", "3.00", "4.00", "5.00"]
    assert len(header) == len(row)

  def test_summary_single_value(self):
    report = SummaryStatisticsCapability().summarize([7])
    assert report.split("\n")[1].split() == ["7.00"] * 6

  def test_summary_of_nothing(self):
    with pytest.raises(ExternalBackendError):
      SummaryStatisticsCapability().summarize([])


class TestProviderFailures:
  """Provider failures surface as ExternalBackendError and leave the session usable"""

  def test_provider_exception_is_wrapped(self, broken_interpreter):
    broken_interpreter.run("use python")
    with pytest.raises(ExternalBackendError, match="model file missing") as exc_info:
      broken_interpreter.run('tag "a" with pos as tags')
    assert exc_info.value.backend == "python"
    assert "tags" not in broken_interpreter.bindings

  def test_malformed_result_is_rejected(self, broken_interpreter):
    broken_interpreter.run("use python")
    with pytest.raises(ExternalBackendError):
      broken_interpreter.run('lemmatize "a" as lemmas')

  def test_provider_start_failure(self, broken_interpreter):
    broken_interpreter.bindings["nums"] = make_list([make_number(1)])
    broken_interpreter.run("use r")
    with pytest.raises(ExternalBackendError, match="not installed"):
      broken_interpreter.run("summarize nums as report")
    broken_interpreter.run("define still as 1")
    assert broken_interpreter.lookup("still") == make_number(1)

  def test_unregistered_backend(self):
    registry = BackendRegistry({})
    with pytest.raises(ExternalBackendError, match="No provider"):
      registry.summarize([1])


class TestDebugOutput:
  """A debug session also reports backend start-up"""

  def test_actor_and_provider_start_are_reported(self, stub_backends, capsys):
    debug_interpreter = create_interpreter(debug=True, backends=stub_backends)
    debug_interpreter.run('use python tag "a" with pos as tags')
    out = capsys.readouterr().out
    assert "[backend python: starting actor]" in out
    assert "[backend python: initializing provider]" in out

  def test_quiet_session_prints_nothing(self, interpreter, capsys):
    interpreter.run('use python tag "a" with pos as tags')
    assert capsys.readouterr().out == ""
