"""
Desugaring Transformer.

Rewrites the sentinel tree into plain Python that only depends on
`mixin_desugar.runtime`.

Declarations::

    mixin Tagged extends Base:            @_mixin_runtime.mixin("Tagged", extends=Base)
        value = 1                   ->    def Tagged(__mixin_superclass__):
                                              class __mixin_layer__(Base(__mixin_superclass__)):
                                                  value = 1
                                              return __mixin_layer__

Expressions::

    Target = mixin:                       @_mixin_runtime.mixin(None)
        value = 1                   ->    def _anonymous_mixin_1(__mixin_superclass__):
                                              class __mixin_layer__(__mixin_superclass__):
                                                  value = 1
                                              return __mixin_layer__
                                          Target = _anonymous_mixin_1
                                          del _anonymous_mixin_1

Applications::

    class C(A with M1, M2):         ->    class C(M2(M1(A))):

The class statement is re-evaluated on every call of the factory, so each
application gets its own class object and its own member functions. The layer
class gets a fixed local name so that the mixin name inside the body still
refers to the mixin itself; the runtime renames each layer after its mixin.
Private names in the body are mangled against the mixin name beforehand (see
`mixin_desugar.core.private_names`), as the compiler would for ``class M``.
"""

from typing import Dict, List, Optional, Union

import libcst as cst

from mixin_desugar.config import RuntimeConfig
from mixin_desugar.core.grammar import ANONYMOUS_PREFIX, SUPERCLASS_PARAM
from mixin_desugar.core.nodes import DesugarPlan, MixinApplication, MixinDefinition
from mixin_desugar.core.private_names import PrivateNameMangler
from mixin_desugar.core.tracer import get_tracer
from mixin_desugar.markers import MarkerRegistry
from mixin_desugar.runtime import LAYER_CLASS_NAME
from mixin_desugar.utils.node_diff import capture_node_source


def build_application(base: cst.BaseExpression, mixins: List[cst.BaseExpression]) -> cst.BaseExpression:
  """
  Nests mixin calls so the first listed mixin is applied closest to `base`.

  Args:
      base: The superclass expression.
      mixins: Operands in source order.

  Returns:
      cst.BaseExpression: ``Mn(...M2(M1(base))...)``.
  """
  expr = base
  for operand in mixins:
    expr = cst.Call(func=operand, args=[cst.Arg(value=expr)])
  return expr


class MixinDesugarer(cst.CSTTransformer):
  """
  Replaces sentinel mixin nodes with factory functions and nested calls.

  Must visit the same tree instance the `MixinCollector` ran over, since
  definitions and applications are matched by node identity.

  Attributes:
      desugared (List[MixinDefinition]): Definitions emitted, in completion order.
      applied (List[MixinApplication]): Applications emitted, in completion order.
  """

  def __init__(
    self,
    plan: DesugarPlan,
    config: Optional[RuntimeConfig] = None,
    registry: Optional[MarkerRegistry] = None,
  ):
    self.plan = plan
    self.config = config or RuntimeConfig()
    self.registry = registry
    self._definitions: Dict[int, MixinDefinition] = {id(d.node): d for d in plan.definitions}
    self._applications: Dict[int, MixinApplication] = {id(a.node): a for a in plan.applications}
    self._anonymous_count = 0
    self.desugared: List[MixinDefinition] = []
    self.applied: List[MixinApplication] = []

  # --- Applications ---

  def leave_Arg(self, original_node: cst.Arg, updated_node: cst.Arg) -> cst.Arg:
    application = self._applications.get(id(original_node))
    if application is None:
      return updated_node

    call = updated_node.value
    # Operands may have been rewritten themselves, so rebuild from the updated call.
    base = call.args[0].value
    mixins = [arg.value for arg in call.args[1:]]
    nested = build_application(base, mixins)

    get_tracer().log_mutation(
      f"Application in class {application.class_name}",
      capture_node_source(original_node.value),
      capture_node_source(nested),
    )
    self.applied.append(application)
    return updated_node.with_changes(value=nested)

  # --- Definitions ---

  def leave_ClassDef(
    self, original_node: cst.ClassDef, updated_node: cst.ClassDef
  ) -> Union[cst.ClassDef, cst.FunctionDef, cst.FlattenSentinel]:
    definition = self._definitions.get(id(original_node))
    if definition is None:
      return updated_node

    marker = definition.marker(self.registry)
    get_tracer().log_marker(definition.display_name, repr(marker), definition.position.line)

    if definition.name is not None:
      factory_name = definition.name
    else:
      self._anonymous_count += 1
      factory_name = f"{ANONYMOUS_PREFIX}{self._anonymous_count}"

    factory = self._build_factory(definition, updated_node, factory_name)
    self.desugared.append(definition)
    get_tracer().log_mutation(
      f"Mixin {definition.display_name}",
      f"line {definition.position.line}",
      capture_node_source(factory),
    )

    if definition.bind_target is None:
      return factory

    bind = cst.SimpleStatementLine(
      body=[
        cst.Assign(
          targets=[cst.AssignTarget(target=definition.bind_target)],
          value=cst.Name(factory_name),
        )
      ]
    )
    cleanup = cst.SimpleStatementLine(body=[cst.Del(target=cst.Name(factory_name))])
    return cst.FlattenSentinel([factory, bind, cleanup])

  def _runtime_attr(self, attr: str) -> cst.Attribute:
    return cst.Attribute(value=cst.Name(self.config.runtime_alias), attr=cst.Name(attr))

  def _build_factory(self, definition: MixinDefinition, node: cst.ClassDef, factory_name: str) -> cst.FunctionDef:
    superclass: cst.BaseExpression = cst.Name(SUPERCLASS_PARAM)
    if definition.super_mixin is not None:
      superclass = cst.Call(func=definition.super_mixin, args=[cst.Arg(value=superclass)])

    # Private names are mangled against the mixin, not the generated class.
    mangler = PrivateNameMangler(definition.binding_name or factory_name)
    body = node.body.visit(mangler)
    if mangler.renamed:
      get_tracer().log_inspection(definition.display_name, "mangled", f"{mangler.renamed} private name(s)")

    generated_class = cst.ClassDef(
      name=cst.Name(LAYER_CLASS_NAME),
      body=body,
      bases=[cst.Arg(value=superclass)],
    )

    name_arg = cst.SimpleString(f'"{definition.name}"') if definition.name is not None else cst.Name("None")
    decorator_args = [cst.Arg(value=name_arg)]
    if definition.super_mixin is not None:
      decorator_args.append(
        cst.Arg(
          keyword=cst.Name("extends"),
          value=definition.super_mixin,
          equal=cst.AssignEqual(
            whitespace_before=cst.SimpleWhitespace(""),
            whitespace_after=cst.SimpleWhitespace(""),
          ),
        )
      )

    return cst.FunctionDef(
      name=cst.Name(factory_name),
      params=cst.Parameters(params=[cst.Param(name=cst.Name(SUPERCLASS_PARAM))]),
      body=cst.IndentedBlock(
        body=[
          generated_class,
          cst.SimpleStatementLine(body=[cst.Return(value=cst.Name(LAYER_CLASS_NAME))]),
        ]
      ),
      decorators=[cst.Decorator(decorator=cst.Call(func=self._runtime_attr("mixin"), args=decorator_args))],
      leading_lines=node.leading_lines,
    )
