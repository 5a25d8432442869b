"""
Tests for the Runtime Support Library.

Verifies:
1. Application produces fresh, tagged subclasses.
2. Membership (`isinstance`, `issubclass`, `has_capability`) is sound and never raises.
3. Mixins are not constructible and cannot be used as bases directly.
4. Tags are non-enumerable and cannot be re-bound to another mixin.
5. Introspection helpers (`mixin_chain`, `own_members`, `ensure_mixin`).
"""

from typing import Generic, TypeVar

import pytest

from mixin_desugar.errors import IdentityConflictError, ResolutionError
from mixin_desugar.runtime import (
  LAYER_CLASS_NAME,
  Mixin,
  ensure_mixin,
  mixin,
  mixin_chain,
  own_members,
  own_tags,
  tag_class,
)


def _make_tagged():
  @mixin("Tagged")
  def Tagged(superclass):
    class __mixin_layer__(superclass):
      value = 1

      def get(self):
        return self.value

    return __mixin_layer__

  return Tagged


def test_decorator_returns_mixin_object():
  Tagged = _make_tagged()
  assert isinstance(Tagged, Mixin)
  assert Tagged.name == "Tagged"
  assert Tagged.super_mixin is None
  assert repr(Tagged) == "<mixin Tagged>"


def test_application_subclasses_argument_and_renames_layer():
  Tagged = _make_tagged()

  class Base:
    pass

  produced = Tagged(Base)
  assert issubclass(produced, Base)
  assert produced.__name__ == "Tagged"
  assert produced.__name__ != LAYER_CLASS_NAME
  assert produced().get() == 1


def test_each_application_is_independent():
  Tagged = _make_tagged()
  first = Tagged(object)
  second = Tagged(object)

  assert first is not second
  assert first.get is not second.get
  assert vars(first)["get"] is not vars(second)["get"]


def test_membership_through_application():
  Tagged = _make_tagged()

  class C(Tagged(object)):
    pass

  class D(C):
    pass

  assert isinstance(C(), Tagged)
  assert isinstance(D(), Tagged)
  assert issubclass(D, Tagged)
  assert not isinstance(object(), Tagged)
  assert not issubclass(int, Tagged)


@pytest.mark.parametrize("candidate", [None, 0, 1.5, "text", b"raw", True, (), [], {}])
def test_membership_of_primitives_is_false(candidate):
  Tagged = _make_tagged()
  assert Tagged.has_capability(candidate) is False
  assert not isinstance(candidate, Tagged)


def test_is_applied_to_ignores_non_classes():
  Tagged = _make_tagged()
  assert Tagged.is_applied_to(42) is False
  assert Tagged.is_applied_to(None) is False


def test_membership_distinguishes_mixins_with_same_name():
  first = _make_tagged()
  second = _make_tagged()

  class C(first(object)):
    pass

  assert isinstance(C(), first)
  assert not isinstance(C(), second)
  assert first.marker != second.marker


@pytest.mark.parametrize("args", [(), (object, object)])
def test_mixin_is_not_constructible(args):
  Tagged = _make_tagged()
  with pytest.raises(TypeError, match="not constructible"):
    Tagged(*args)


@pytest.mark.parametrize("base", [1, None, "Base"])
def test_non_class_base_is_rejected(base):
  Tagged = _make_tagged()
  with pytest.raises(TypeError, match="must be a class"):
    Tagged(base)


def test_mixin_is_not_a_base_for_another_mixin():
  Tagged = _make_tagged()
  with pytest.raises(TypeError, match="must be a class"):
    _make_tagged()(Tagged)


def test_generic_alias_base_is_resolved():
  T = TypeVar("T")
  Tagged = _make_tagged()

  produced = Tagged(Generic[T])
  assert issubclass(produced, Generic)
  assert produced.__parameters__ == (T,)
  assert isinstance(produced(), Tagged)


def test_keyword_application_is_rejected():
  Tagged = _make_tagged()
  with pytest.raises(TypeError):
    Tagged(superclass=object)


def test_mixin_cannot_be_a_base_class():
  Tagged = _make_tagged()
  with pytest.raises(TypeError, match="cannot be used as a base class"):

    class Broken(Tagged):
      pass


def test_factory_must_return_subclass():
  @mixin("Bad")
  def Bad(superclass):
    class Unrelated:
      pass

    return Unrelated

  class Base:
    pass

  with pytest.raises(TypeError, match="must return a subclass"):
    Bad(Base)


def test_non_callable_factory_is_rejected():
  with pytest.raises(TypeError):
    Mixin(42, name="Broken")


def test_tags_are_not_enumerable():
  Tagged = _make_tagged()
  produced = Tagged(object)

  assert Tagged.marker not in vars(produced).values()
  assert not any(str(Tagged.marker) in name for name in dir(produced))
  assert own_tags(produced) == {Tagged.marker: Tagged}


def test_tag_is_idempotent():
  Tagged = _make_tagged()
  produced = Tagged(object)
  Tagged.tag(produced)
  assert own_tags(produced) == {Tagged.marker: Tagged}


def test_retagging_with_other_owner_conflicts():
  Tagged = _make_tagged()
  Other = _make_tagged()
  produced = Tagged(object)

  with pytest.raises(IdentityConflictError):
    tag_class(produced, Tagged.marker, Other)


def test_tag_class_requires_class():
  Tagged = _make_tagged()
  with pytest.raises(TypeError):
    tag_class(object(), Tagged.marker, Tagged)


def test_has_capability_can_be_replaced_per_mixin():
  """
  Scenario: A single mixin's membership hook is swapped for duck typing.
  Expectation: `isinstance` follows the replacement, other mixins unaffected.
  """
  Tagged = _make_tagged()
  Other = _make_tagged()
  Tagged.has_capability = lambda candidate: hasattr(candidate, "quack")

  class Duck:
    def quack(self):
      return "quack"

  assert isinstance(Duck(), Tagged)
  assert not isinstance(Duck(), Other)


def test_has_capability_can_be_overridden_in_subclass():
  class Permissive(Mixin):
    def has_capability(self, candidate):
      return True

  M = Permissive(lambda superclass: type("Layer", (superclass,), {}), name="Anything")
  assert isinstance(3, M)


def test_extends_links_super_mixin():
  Tagged = _make_tagged()

  @mixin("Counted", extends=Tagged)
  def Counted(superclass):
    class __mixin_layer__(Tagged(superclass)):
      count = 2

    return __mixin_layer__

  class C(Counted(object)):
    pass

  assert Counted.super_mixin is Tagged
  assert isinstance(C(), Counted)
  assert isinstance(C(), Tagged)
  assert C().get() == 1


def test_extends_must_be_mixin():
  with pytest.raises(ResolutionError):
    mixin("Broken", extends=object)(lambda superclass: superclass)


def test_ensure_mixin():
  Tagged = _make_tagged()
  assert ensure_mixin(Tagged, "Tagged") is Tagged
  with pytest.raises(ResolutionError, match="does not resolve to a mixin"):
    ensure_mixin(3, "three")


def test_mixin_chain_lists_layers_most_derived_first():
  Tagged = _make_tagged()

  @mixin("Extra")
  def Extra(superclass):
    class __mixin_layer__(superclass):
      pass

    return __mixin_layer__

  class C(Extra(Tagged(object))):
    pass

  assert mixin_chain(C) == [Extra, Tagged]
  assert mixin_chain(int) == []


def test_own_members_skips_interpreter_entries():
  Tagged = _make_tagged()
  produced = Tagged(object)
  assert set(own_members(produced)) == {"value", "get"}


def test_anonymous_mixin_names():
  @mixin(None)
  def _anonymous_mixin_1(superclass):
    class __mixin_layer__(superclass):
      pass

    return __mixin_layer__

  assert _anonymous_mixin_1.name is None
  assert _anonymous_mixin_1.__name__ == "<anonymous mixin>"
  assert _anonymous_mixin_1.marker.label is None
  assert isinstance(_anonymous_mixin_1(object)(), _anonymous_mixin_1)
