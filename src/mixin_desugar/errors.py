"""
Error Taxonomy for mixin-desugar.

Transform-time errors carry the `SourcePosition` of the offending declaration
or application. Runtime errors (identity conflicts) signal misuse of the
runtime library and are not meant to be caught by callers.

Hierarchy::

    MixinError
    ├── MixinSyntaxError          malformed mixin / with grammar
    ├── ResolutionError           operand is not a mixin
    │   └── CircularCompositionError
    └── IdentityConflictError     re-tagging a class with a different mixin
"""

from dataclasses import dataclass
from typing import Optional


@dataclass(frozen=True)
class SourcePosition:
  """1-based line, 0-based column of a construct in the original source."""

  line: int
  column: int = 0

  def __str__(self) -> str:
    return f"{self.line}:{self.column}"


class MixinError(Exception):
  """
  Base class for every error raised by the transform engine or runtime.

  Attributes:
      message (str): Human-readable description without position prefix.
      position (Optional[SourcePosition]): Location in the original source.
  """

  def __init__(self, message: str, position: Optional[SourcePosition] = None):
    self.message = message
    self.position = position
    super().__init__(self._render())

  def _render(self) -> str:
    if self.position is None:
      return self.message
    return f"line {self.position}: {self.message}"


class MixinSyntaxError(MixinError):
  """Malformed `mixin` declaration or `with` application list."""


class ResolutionError(MixinError):
  """An `extends` or `with` operand does not resolve to a mixin."""


class CircularCompositionError(ResolutionError):
  """
  A mixin's `extends` chain revisits itself.

  Attributes:
      chain (tuple): Names along the detected cycle, first name repeated last.
  """

  def __init__(self, chain, position: Optional[SourcePosition] = None):
    self.chain = tuple(chain)
    super().__init__(f"circular mixin composition: {' -> '.join(self.chain)}", position)


class IdentityConflictError(MixinError):
  """A class already carries the marker key mapped to a different mixin."""
