"""
Tests for the Mixin Collector.

Verifies:
1. Sentinel classes become `MixinDefinition` entries with names, operands and positions.
2. `with` base-list entries become `MixinApplication` entries in source order.
3. Scope bindings are recorded for later name resolution.
4. Decorated mixins are rejected.
"""

import textwrap

import pytest
from libcst.metadata import MetadataWrapper

from mixin_desugar.core.collector import MixinCollector
from mixin_desugar.core.grammar import parse_extended
from mixin_desugar.core.nodes import DesugarPlan
from mixin_desugar.enums import BindingKind
from mixin_desugar.errors import MixinSyntaxError
from mixin_desugar.utils.node_diff import capture_node_source


def collect(code: str) -> DesugarPlan:
  collector = MixinCollector()
  MetadataWrapper(parse_extended(textwrap.dedent(code))).visit(collector)
  return collector.plan


def test_plain_module_yields_empty_plan():
  plan = collect(
    """
    class C(object):
        pass
    """
  )
  assert plan.is_empty
  assert plan.lookup("C", ()) == [BindingKind.CLASS]


def test_declaration_is_collected():
  plan = collect(
    """
    mixin Tagged:
        value = 1
    """
  )
  assert len(plan.definitions) == 1
  definition = plan.definitions[0]
  assert definition.name == "Tagged"
  assert definition.super_mixin is None
  assert definition.position.line == 2
  assert not definition.is_anonymous
  assert plan.lookup("Tagged", ()) == [BindingKind.MIXIN]


def test_extends_operand_is_kept_as_expression():
  plan = collect(
    """
    mixin Counted extends lib.Tagged:
        pass
    """
  )
  assert capture_node_source(plan.definitions[0].super_mixin) == "lib.Tagged"


def test_expression_form_is_anonymous():
  plan = collect(
    """
    Target = mixin extends Tagged:
        pass
    """
  )
  definition = plan.definitions[0]
  assert definition.is_anonymous
  assert definition.binding_name == "Target"
  assert definition.display_name == "<mixin bound to Target>"
  assert capture_node_source(definition.super_mixin) == "Tagged"
  assert plan.lookup("Target", ()) == [BindingKind.MIXIN]


def test_attribute_bound_expression_has_no_binding_name():
  plan = collect(
    """
    holder.Target = mixin:
        pass
    """
  )
  definition = plan.definitions[0]
  assert definition.binding_name is None
  assert definition.display_name == "<mixin bound to holder.Target>"


def test_applications_in_source_order():
  plan = collect(
    """
    class A(Base with M1, M2):
        pass

    class B(A with M3, metaclass=Meta):
        pass
    """
  )
  assert [a.class_name for a in plan.applications] == ["A", "B"]
  first, second = plan.applications
  assert capture_node_source(first.base) == "Base"
  assert first.mixin_sources == ["M1", "M2"]
  assert second.mixin_sources == ["M3"]
  assert second.position.line == 5


def test_nested_constructs_record_scope():
  plan = collect(
    """
    def build(param):
        mixin Local:
            class Inner(object with Local):
                pass
        return Local
    """
  )
  definition = plan.definitions[0]
  application = plan.applications[0]
  assert definition.scope == ("def:build@2",)
  assert application.scope == ("def:build@2", "mixin:Local@3")
  assert plan.lookup("param", definition.scope) == [BindingKind.UNKNOWN]
  assert plan.lookup("Local", application.scope) == [BindingKind.MIXIN]
  assert plan.lookup("Local", ()) is None


def test_bindings_by_kind():
  plan = collect(
    """
    import os.path
    from lib import shared as alias
    number = 3
    nothing = None
    computed = make()

    def helper():
        pass
    """
  )
  assert plan.lookup("os", ()) == [BindingKind.IMPORT]
  assert plan.lookup("alias", ()) == [BindingKind.IMPORT]
  assert plan.lookup("number", ()) == [BindingKind.VALUE]
  assert plan.lookup("nothing", ()) == [BindingKind.VALUE]
  assert plan.lookup("computed", ()) == [BindingKind.UNKNOWN]
  assert plan.lookup("helper", ()) == [BindingKind.FUNCTION]


def test_rebinding_accumulates_kinds():
  plan = collect(
    """
    M = 1
    mixin M:
        pass
    """
  )
  assert plan.lookup("M", ()) == [BindingKind.VALUE, BindingKind.MIXIN]


def test_decorated_mixin_is_rejected():
  code = """
  @decorate
  mixin Tagged:
      pass
  """
  with pytest.raises(MixinSyntaxError, match="decorators are not supported"):
    collect(code)
