"""
Enumerations for mixin-desugar.
"""

from enum import Enum


class BindingKind(str, Enum):
  """
  What a module-local name was bound to, as far as the transformer can tell.

  Used to decide whether an `extends` / `with` operand can be a mixin.
  """

  MIXIN = "mixin"
  CLASS = "class"
  FUNCTION = "function"
  IMPORT = "import"
  VALUE = "value"  # Literal assignment (x = 3, x = "a", x = [...])
  UNKNOWN = "unknown"  # Parameters, computed assignments, aliases

  @property
  def may_be_mixin(self) -> bool:
    return self in (BindingKind.MIXIN, BindingKind.IMPORT, BindingKind.UNKNOWN)
