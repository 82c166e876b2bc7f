"""
Test configuration for Talea tests
"""

import pytest
import sys
from pathlib import Path

# Add the project root to Python path
project_root = Path(__file__).parent.parent
sys.path.insert(0, str(project_root))

from backends import BackendRegistry, NLPCapability, StatisticsCapability
from interpreter import create_interpreter


class StubNLP(NLPCapability):
  """Deterministic NLP capability: every word is a noun, lemmas drop a trailing 's'"""

  instances = 0

  def __init__(self):
    StubNLP.instances += 1

  def tag(self, text, scheme):
    if scheme == "POS":
      return [(word, "NN") for word in text.split()]
    return [(word, "PERSON") for word in text.split() if word[:1].isupper()]

  def lemmatize(self, text):
    return [word[:-1] if word.endswith("s") else word for word in text.split()]


class StubStatistics(StatisticsCapability):
  def summarize(self, numbers):
    return f"n={len(numbers)} sum={sum(numbers)}"


@pytest.fixture
def stub_backends():
  """A private backend registry with stub providers, stopped after the test"""
  StubNLP.instances = 0
  registry = BackendRegistry({"python": StubNLP, "r": StubStatistics})
  yield registry
  registry.terminate_all()


@pytest.fixture
def interpreter(stub_backends):
  """Fresh session wired to the stub backends"""
  return create_interpreter(backends=stub_backends)
