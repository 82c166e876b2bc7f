"""
Talea Backends
Capability contracts for NLP and statistics providers, and the actors that host them
Each backend runs in one lazily started pykka actor shared by the whole process
"""

from abc import ABC, abstractmethod
from typing import Any, Callable, Dict, List, Optional, Tuple
import statistics

import pykka

from error_handling import ExternalBackendError, TaleaError


PYTHON = "python"
R = "r"

TAG_SCHEMES = ("POS", "NER")


# ============================================================================
# CAPABILITY CONTRACTS
# ============================================================================

class NLPCapability(ABC):
  """Contract for the python backend"""

  @abstractmethod
  def tag(self, text: str, scheme: str) -> List[Tuple[str, str]]:
    """Return (text, label) pairs in input order; scheme is "POS" or "NER"."""
    ...

  @abstractmethod
  def lemmatize(self, text: str) -> List[str]:
    """Return one lemma per token, in input order."""
    ...


class StatisticsCapability(ABC):
  """Contract for the r backend"""

  @abstractmethod
  def summarize(self, numbers: List[int]) -> str:
    ...


# ============================================================================
# DEFAULT PROVIDERS
# ============================================================================

class NltkCapability(NLPCapability):
  """NLP provider backed by nltk; needs the talea[nlp] extra and its corpora"""

  def __init__(self):
    try:
      import nltk
      from nltk.stem import WordNetLemmatizer
    except ImportError as e:
      raise ExternalBackendError(
          "The python backend needs nltk: pip install 'talea[nlp]'", PYTHON) from e
    self.nltk = nltk
    self.lemmatizer = WordNetLemmatizer()

  def tag(self, text: str, scheme: str) -> List[Tuple[str, str]]:
    tagged = self.nltk.pos_tag(self.nltk.word_tokenize(text))
    if scheme == "POS":
      return tagged

    entities = []
    for node in self.nltk.ne_chunk(tagged):
      # Chunked entities are subtrees; plain (word, tag) pairs are not entities
      if hasattr(node, 'label'):
        words = " ".join(word for word, _ in node.leaves())
        entities.append((words, node.label()))
    return entities

  def lemmatize(self, text: str) -> List[str]:
    return [self.lemmatizer.lemmatize(token) for token in self.nltk.word_tokenize(text)]


class SummaryStatisticsCapability(StatisticsCapability):
  """Six-number summary laid out like R's summary()"""

  def summarize(self, numbers: List[int]) -> str:
    if not numbers:
      raise ExternalBackendError("summarize needs at least one number", R)

    data = sorted(numbers)
    if len(data) == 1:
      first_quartile = third_quartile = data[0]
    else:
      # The inclusive method is R's default (type 7) quantile
      first_quartile, _, third_quartile = statistics.quantiles(data, n=4, method='inclusive')

    cells = [
        ("Min.", data[0]),
        ("1st Qu.", first_quartile),
        ("Median", statistics.median(data)),
        ("Mean", statistics.fmean(data)),
        ("3rd Qu.", third_quartile),
        ("Max.", data[-1]),
    ]
    rendered = [(label, f"{value:.2f}") for label, value in cells]
    widths = [max(len(label), len(value)) for label, value in rendered]
    header = " ".join(label.rjust(w) for (label, _), w in zip(rendered, widths))
    row = " ".join(value.rjust(w) for (_, value), w in zip(rendered, widths))
    return f"{header}\n{row}"


DEFAULT_PROVIDERS: Dict[str, Callable[[], Any]] = {
    PYTHON: NltkCapability,
    R: SummaryStatisticsCapability,
}


# ============================================================================
# ACTOR SYSTEM (Using Pykka)
# ============================================================================

class BackendActor(pykka.ThreadingActor):
  """Actor hosting one backend provider; handles one call at a time"""

  use_daemon_thread = True

  def __init__(self, backend: str, factory: Callable[[], Any], debug: bool = False):
    super().__init__()
    self.backend = backend
    self.factory = factory
    self.debug = debug
    self.provider = None

  def _get_provider(self):
    # Built on first call, not when the backend is enabled
    if self.provider is None:
      if self.debug:
        print(f"[backend {self.backend}: initializing provider]")
      self.provider = self.factory()
    return self.provider

  def tag(self, text: str, scheme: str):
    return self._get_provider().tag(text, scheme)

  def lemmatize(self, text: str):
    return self._get_provider().lemmatize(text)

  def summarize(self, numbers: List[int]):
    return self._get_provider().summarize(numbers)


class BackendRegistry:
  """Registry mapping backend names to provider factories and running actors"""

  def __init__(self, factories: Optional[Dict[str, Callable[[], Any]]] = None,
               debug: bool = False):
    self.factories: Dict[str, Callable[[], Any]] = dict(
        DEFAULT_PROVIDERS if factories is None else factories)
    self.actors: Dict[str, pykka.ActorRef] = {}
    self.debug = debug

  def get_actor(self, backend: str) -> pykka.ActorRef:
    """Get the actor for a backend, starting it on first use"""
    actor_ref = self.actors.get(backend)
    if actor_ref is not None and actor_ref.is_alive():
      return actor_ref

    factory = self.factories.get(backend)
    if factory is None:
      raise ExternalBackendError(f"No provider registered for backend '{backend}'", backend)
    if self.debug:
      print(f"[backend {backend}: starting actor]")
    actor_ref = BackendActor.start(backend, factory, self.debug)
    self.actors[backend] = actor_ref
    return actor_ref

  def _call(self, backend: str, method: str, *args):
    proxy = self.get_actor(backend).proxy()
    try:
      return getattr(proxy, method)(*args).get()
    except TaleaError:
      raise
    except Exception as e:
      raise ExternalBackendError(
          f"{backend} backend failed during {method}: {e}", backend) from e

  def tag(self, text: str, scheme: str) -> List[Tuple[str, str]]:
    result = self._call(PYTHON, "tag", text, scheme)
    try:
      return [(str(word), str(label)) for word, label in result]
    except (TypeError, ValueError) as e:
      raise ExternalBackendError(f"python backend returned malformed tags: {e}", PYTHON) from e

  def lemmatize(self, text: str) -> List[str]:
    result = self._call(PYTHON, "lemmatize", text)
    try:
      return [str(lemma) for lemma in result]
    except TypeError as e:
      raise ExternalBackendError(f"python backend returned malformed lemmas: {e}", PYTHON) from e

  def summarize(self, numbers: List[int]) -> str:
    return str(self._call(R, "summarize", list(numbers)))

  def terminate_all(self):
    """Stop all running backend actors"""
    for actor_ref in self.actors.values():
      if actor_ref.is_alive():
        actor_ref.stop()
    self.actors.clear()


# Process-wide backend registry
_backend_registry = BackendRegistry()


def get_backend_registry() -> BackendRegistry:
  return _backend_registry
