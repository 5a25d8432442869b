"""
Marker-Key Registry.

Allocates one opaque `MarkerKey` per mixin identity. Keys compare by identity
only, so they can never collide with user-chosen string or integer keys.

The registry is process-wide state living for the duration of the program.
Allocation is serialized with a lock so that uniqueness holds when several
source units are transformed concurrently.
"""

import itertools
import threading
from typing import Any, Dict, Optional

# Module-global so that resetting the registry never re-issues a serial.
_SERIALS = itertools.count(1)


class MarkerKey:
  """
  Unique, non-enumerable tag identifying one mixin definition.

  Attributes:
      serial (int): Monotonic allocation number, for display and ordering only.
      label (Optional[str]): Name of the owning mixin, if it has one.
  """

  __slots__ = ("serial", "label")

  def __init__(self, serial: int, label: Optional[str] = None):
    self.serial = serial
    self.label = label

  def __eq__(self, other: Any) -> bool:
    return self is other

  def __hash__(self) -> int:
    return id(self)

  def __repr__(self) -> str:
    name = self.label or "<anonymous>"
    return f"MarkerKey({name}#{self.serial})"

  def __reduce__(self):
    raise TypeError("MarkerKey identities cannot be pickled")


class MarkerRegistry:
  """
  Append-only allocator of marker keys.

  `allocate` always returns a fresh key. `key_for` memoizes one key per owner
  object, which implements lazy "allocate on first reference" semantics.
  """

  def __init__(self):
    self._lock = threading.Lock()
    self._owned: Dict[int, MarkerKey] = {}
    # Keeps owners alive so their id() is never recycled for another owner.
    self._owners: Dict[int, Any] = {}

  def allocate(self, label: Optional[str] = None) -> MarkerKey:
    """
    Issues a new key.

    Args:
        label: Optional display name (usually the mixin name).

    Returns:
        MarkerKey: A key unequal to every key previously issued.
    """
    with self._lock:
      return MarkerKey(next(_SERIALS), label)

  def key_for(self, owner: Any, label: Optional[str] = None) -> MarkerKey:
    """
    Returns the key bound to `owner`, allocating it on first request.

    Args:
        owner: The object owning the identity (a definition node or a Mixin).
        label: Display name used if a key has to be allocated.

    Returns:
        MarkerKey: The same key for every call with the same owner.
    """
    with self._lock:
      existing = self._owned.get(id(owner))
      if existing is not None:
        return existing
      key = MarkerKey(next(_SERIALS), label)
      self._owned[id(owner)] = key
      self._owners[id(owner)] = owner
      return key

  def __len__(self) -> int:
    return len(self._owned)


_GLOBAL_REGISTRY = MarkerRegistry()


def get_registry() -> MarkerRegistry:
  return _GLOBAL_REGISTRY


def reset_registry():
  """Drops owner bookkeeping. Serials keep increasing across resets."""
  global _GLOBAL_REGISTRY
  _GLOBAL_REGISTRY = MarkerRegistry()
