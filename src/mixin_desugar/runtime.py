"""
Runtime Support Library for desugared mixins.

Desugared modules import this module (by default as ``_mixin_runtime``) and
wrap every mixin factory with the `mixin` decorator::

    @_mixin_runtime.mixin("Tagged")
    def Tagged(__mixin_superclass__):
        class __mixin_layer__(__mixin_superclass__):
            value = 1
        return __mixin_layer__

    class C(Tagged(object)):
        pass

The resulting `Mixin` object:

1.  **Applies**: ``Tagged(Base)`` evaluates the factory, so every application
    yields a brand-new class with brand-new member functions.
2.  **Tags**: the produced class is renamed after the mixin and associated with the mixin's `MarkerKey` in a
    side table. The association never shows up in ``vars(cls)`` or ``dir(cls)``.
3.  **Answers membership**: ``isinstance(obj, Tagged)`` walks ``type(obj).__mro__``
    looking for a class tagged by this mixin.
4.  **Refuses construction**: a mixin only accepts a class argument, and cannot
    be listed directly as a base class.

This module has no third-party imports. Desugared code depends only on it
and the standard library.
"""

import weakref
from typing import Any, Callable, Dict, List, Optional

from mixin_desugar.errors import IdentityConflictError, ResolutionError
from mixin_desugar.markers import MarkerKey, get_registry

# Local name of the class statement inside generated factories.
LAYER_CLASS_NAME = "__mixin_layer__"

# class -> {MarkerKey: Mixin}. Weak so that discarded applications are collected.
_TAGS: "weakref.WeakKeyDictionary[type, Dict[MarkerKey, Mixin]]" = weakref.WeakKeyDictionary()

# Entries the interpreter adds to every class namespace.
_IMPLICIT_MEMBERS = frozenset(
  {
    "__module__",
    "__qualname__",
    "__doc__",
    "__dict__",
    "__weakref__",
    "__firstlineno__",
    "__static_attributes__",
    "__annotations__",
    "__annotate__",
    "__annotate_func__",
    "__annotations_cache__",
    "__classcell__",
    "__classdictcell__",
  }
)


def _own_tags(node: Any) -> Optional[Dict[MarkerKey, "Mixin"]]:
  try:
    return _TAGS.get(node)
  except TypeError:
    # Unhashable or non-weakrefable metaclass instances never carry tags.
    return None


def tag_class(cls: type, key: MarkerKey, owner: "Mixin") -> None:
  """
  Associates `key` with `owner` on `cls` itself (not its bases).

  Args:
      cls: The class produced by an application.
      key: Marker key of the owning mixin.
      owner: The mixin that produced `cls`.

  Raises:
      TypeError: If `cls` is not a class.
      IdentityConflictError: If `key` is already mapped to a different mixin.
  """
  if not isinstance(cls, type):
    raise TypeError(f"can only tag classes, not {type(cls).__name__}")

  tags = _TAGS.get(cls)
  if tags is None:
    tags = {}
    _TAGS[cls] = tags

  current = tags.get(key)
  if current is not None and current is not owner:
    raise IdentityConflictError(f"{cls.__qualname__} already tagged by {current!r} under {key!r}; refusing to retag with {owner!r}")
  tags[key] = owner


def own_tags(cls: type) -> Dict[MarkerKey, "Mixin"]:
  """Returns a copy of the tags attached directly to `cls`."""
  return dict(_own_tags(cls) or {})


def mixin_chain(cls: type) -> List["Mixin"]:
  """
  Recovers the mixins that produced each application layer of `cls`.

  Args:
      cls: Any class.

  Returns:
      List[Mixin]: Mixins ordered from most-derived layer to least-derived.
  """
  found: List[Mixin] = []
  for node in getattr(cls, "__mro__", ()):
    tags = _own_tags(node)
    if tags:
      found.extend(tags.values())
  return found


def own_members(cls: type) -> Dict[str, Any]:
  """
  Members declared in the body of `cls`, minus interpreter-managed entries.

  Args:
      cls: The class to introspect.

  Returns:
      Dict[str, Any]: Name to value, in declaration order.
  """
  return {name: value for name, value in vars(cls).items() if name not in _IMPLICIT_MEMBERS}


def _resolve_base(base: Any) -> Optional[tuple]:
  """
  Classes a class statement would use for `base`.

  Non-class bases such as ``Generic[T]`` are resolved through their
  ``__mro_entries__`` hook, the way a ``class`` statement does.

  Returns:
      Optional[tuple]: The resolved classes, or None if `base` is not usable as a base.
  """
  if isinstance(base, type):
    return (base,)
  hook = getattr(type(base), "__mro_entries__", None)
  if hook is None or isinstance(base, Mixin):
    return None
  entries = hook(base, (base,))
  if not isinstance(entries, tuple) or not all(isinstance(cls, type) for cls in entries):
    return None
  return entries


def _describe(base: Any) -> str:
  return base.__qualname__ if isinstance(base, type) else repr(base)


def ensure_mixin(value: Any, label: str) -> "Mixin":
  """
  Validates that an `extends` operand is a mixin.

  Raises:
      ResolutionError: If `value` is anything other than a `Mixin`.
  """
  if not isinstance(value, Mixin):
    raise ResolutionError(f"'{label}' does not resolve to a mixin (got {type(value).__name__})")
  return value


class Mixin:
  """
  A reusable class body: a function from a superclass to a new subclass.

  The membership hook is `has_capability`. Subclasses may override it, and a
  single mixin may replace it by assigning ``M.has_capability = predicate``.

  Attributes:
      name (Optional[str]): Declared name, None for anonymous mixin expressions.
      super_mixin (Optional[Mixin]): Mixin named in the `extends` clause.
      marker (MarkerKey): Identity tag shared by all applications.
  """

  def __init__(self, factory: Callable[[type], type], name: Optional[str] = None, extends: Optional["Mixin"] = None):
    if not callable(factory):
      raise TypeError("mixin factory must be callable")
    if extends is not None:
      ensure_mixin(extends, getattr(extends, "__name__", repr(extends)))

    self._factory = factory
    self.name = name
    self.super_mixin = extends
    self.marker = get_registry().key_for(self, name)

    self.__name__ = name or "<anonymous mixin>"
    self.__qualname__ = name or getattr(factory, "__qualname__", self.__name__)
    self.__module__ = getattr(factory, "__module__", None)
    self.__doc__ = getattr(factory, "__doc__", None)
    self.__wrapped__ = factory

  def __call__(self, *args: Any, **kwargs: Any) -> type:
    """
    Applies the mixin to a superclass.

    Returns:
        type: A new subclass of the argument, tagged with this mixin.

    Raises:
        TypeError: If called with anything but a single base (mixins are not
            constructible), or if that base is not a class.
    """
    if kwargs or len(args) != 1:
      raise TypeError(f"{self!r} is not constructible; apply it to exactly one class, e.g. `class C(Base with {self.__name__})`")

    superclass = args[0]
    resolved = _resolve_base(superclass)
    if resolved is None:
      raise TypeError(f"base of {self!r} must be a class, not {type(superclass).__name__}")

    # The factory gets the base as written so that its class statement applies __mro_entries__ itself.
    produced = self._factory(superclass)
    if not isinstance(produced, type) or not all(issubclass(produced, cls) for cls in resolved):
      raise TypeError(f"factory of {self!r} must return a subclass of {_describe(superclass)}")

    if produced.__name__ == LAYER_CLASS_NAME:
      produced.__name__ = self.__name__
      produced.__qualname__ = self.__qualname__

    self.tag(produced)
    return produced

  def tag(self, cls: type) -> None:
    """Attaches this mixin's marker to `cls`. Idempotent."""
    tag_class(cls, self.marker, self)

  def has_capability(self, candidate: Any) -> bool:
    """
    Membership test: does `candidate`'s class chain include a layer of this mixin?

    Pure read. Safe for any value, including None and primitives.
    """
    return self.is_applied_to(type(candidate))

  def is_applied_to(self, cls: Any) -> bool:
    """
    Walks ``cls.__mro__`` from most to least derived, checking own tags only.

    Returns:
        bool: True on the first layer tagged by this mixin, False otherwise
        (including for non-class arguments).
    """
    if not isinstance(cls, type):
      return False
    for node in cls.__mro__:
      tags = _own_tags(node)
      if tags and tags.get(self.marker) is self:
        return True
    return False

  def __instancecheck__(self, instance: Any) -> bool:
    return bool(self.has_capability(instance))

  def __subclasscheck__(self, subclass: Any) -> bool:
    return self.is_applied_to(subclass)

  def __mro_entries__(self, bases: tuple) -> tuple:
    raise TypeError(f"{self!r} cannot be used as a base class directly; apply it with `class C(Base with {self.__name__})`")

  def __repr__(self) -> str:
    return f"<mixin {self.__qualname__}>"


def mixin(name: Optional[str], extends: Optional[Mixin] = None) -> Callable[[Callable[[type], type]], Mixin]:
  """
  Decorator factory used by desugared code.

  Args:
      name: The declared mixin name, or None for an anonymous mixin expression.
      extends: The super-mixin of a composed declaration.

  Returns:
      Callable: Decorator turning a factory function into a `Mixin`.
  """

  def decorator(factory: Callable[[type], type]) -> Mixin:
    return Mixin(factory, name=name, extends=extends)

  return decorator
