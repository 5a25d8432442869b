"""
Desugaring Trace Logger.

Keeps an ordered record of what the engine did to one source unit:

- phases (grammar extension, collection, resolution, rewrite, import injection),
  opened and closed with the `TraceLogger.phase` context manager,
- marker keys bound to definitions,
- node rewrites, with before/after source,
- operands whose check was deferred to runtime.

`export` returns plain dictionaries, ready for ``json.dumps``.
"""

import contextlib
import itertools
import time
from dataclasses import asdict, dataclass, field
from enum import Enum
from typing import Any, Dict, Iterator, List, Optional


class TraceEventType(str, Enum):
  PHASE_START = "phase_start"
  PHASE_END = "phase_end"
  MARKER_ALLOCATION = "marker_allocation"
  AST_MUTATION = "ast_mutation"
  ANALYSIS_WARNING = "analysis_warning"
  IMPORT_ACTION = "import_action"
  INSPECTION = "inspection"


@dataclass
class TraceEvent:
  """
  One entry of the trace.

  Attributes:
      id: Position of the event in the trace, starting at 1.
      type: Event category.
      description: One-line human readable summary.
      parent_id: Id of the PHASE_START event of the enclosing phase.
      elapsed: Seconds since the logger was created.
      metadata: Event specific details.
  """

  id: int
  type: TraceEventType
  description: str
  parent_id: Optional[int] = None
  elapsed: float = 0.0
  metadata: Dict[str, Any] = field(default_factory=dict)


class TraceLogger:
  """
  Collects `TraceEvent` entries for the current desugaring run.
  """

  def __init__(self):
    self._events: List[TraceEvent] = []
    self._open: List[int] = []
    self._ids = itertools.count(1)
    self._started = time.perf_counter()

  @property
  def depth(self) -> int:
    """Number of phases currently open."""
    return len(self._open)

  def _emit(self, kind: TraceEventType, description: str, parent: Optional[int] = None, **metadata: Any) -> TraceEvent:
    event = TraceEvent(
      id=next(self._ids),
      type=kind,
      description=description,
      parent_id=parent if parent is not None else (self._open[-1] if self._open else None),
      elapsed=round(time.perf_counter() - self._started, 6),
      metadata=metadata,
    )
    self._events.append(event)
    return event

  # --- Phases ---

  def start_phase(self, name: str, detail: str = "") -> int:
    event = self._emit(TraceEventType.PHASE_START, name, detail=detail)
    self._open.append(event.id)
    return event.id

  def end_phase(self) -> None:
    if self._open:
      self._emit(TraceEventType.PHASE_END, "End Phase", parent=self._open.pop())

  @contextlib.contextmanager
  def phase(self, name: str, detail: str = "") -> Iterator[int]:
    """Opens a phase for the duration of the block, closing it on errors too."""
    phase_id = self.start_phase(name, detail)
    try:
      yield phase_id
    finally:
      self.end_phase()

  # --- Events ---

  def log_marker(self, mixin_name: str, marker: str, line: int) -> None:
    self._emit(TraceEventType.MARKER_ALLOCATION, f"{mixin_name} -> {marker}", mixin=mixin_name, marker=marker, line=line)

  def log_mutation(self, label: str, before: str, after: str) -> None:
    """Logs a rewrite of `label` from `before` to `after` source."""
    self._emit(TraceEventType.AST_MUTATION, f"Rewrote {label}", before=before, after=after)

  def log_import(self, statement: str) -> None:
    self._emit(TraceEventType.IMPORT_ACTION, f"Injected {statement}", statement=statement)

  def log_warning(self, message: str) -> None:
    self._emit(TraceEventType.ANALYSIS_WARNING, message, level="warning")

  def log_inspection(self, subject: str, outcome: str, detail: str = "") -> None:
    self._emit(TraceEventType.INSPECTION, f"Inspected '{subject}'", outcome=outcome, detail=detail)

  # --- Output ---

  def events_of(self, kind: TraceEventType) -> List[TraceEvent]:
    return [e for e in self._events if e.type == kind]

  def export(self) -> List[Dict[str, Any]]:
    """Returns the trace as a list of dictionaries."""
    return [asdict(e) for e in self._events]


_GLOBAL_TRACER = TraceLogger()


def get_tracer() -> TraceLogger:
  return _GLOBAL_TRACER


def reset_tracer() -> None:
  """Starts a new, empty trace for the process."""
  global _GLOBAL_TRACER
  _GLOBAL_TRACER = TraceLogger()
