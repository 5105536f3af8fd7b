"""sigflow: fine-grained reactive signals, computeds and effects for Python."""

from importlib.metadata import version as _version

__version__ = _version("sigflow")

from sigflow._tracking import get_pending_count
from sigflow.signal import Signal, SignalWriteError, signal, set_scheduler
from sigflow.computed import Computed, computed
from sigflow.effect import Effect, effect
from sigflow.batch import batch, batched, run_batched
# textual NOT auto-imported: opt-in only

__all__ = [
    "Signal",
    "SignalWriteError",
    "signal",
    "set_scheduler",
    "Computed",
    "computed",
    "Effect",
    "effect",
    "batch",
    "batched",
    "run_batched",
    "get_pending_count",
]
