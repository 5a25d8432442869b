"""
Mixin Resolver.

Validates a `DesugarPlan` before any code is generated:

1.  **Operand shape**: `extends` and `with` operands must be references
    (names, attributes, subscripts, calls). Literals and other computed
    expressions can never evaluate to a mixin.
2.  **Name resolution**: a bare name bound in the module only to classes,
    functions or literals is rejected. Names bound by imports, parameters or
    computed assignments are deferred to the runtime check. Unbound names are
    deferred too, unless strict resolution is requested.
3.  **Composition chains**: `extends` operands naming a mixin of the same
    module are linked (`MixinDefinition.super_definition`), and the chains are
    walked with a visited set to reject circular composition.
"""

from typing import List, Optional

import libcst as cst

from mixin_desugar.core.nodes import DesugarPlan, MixinDefinition, Scope
from mixin_desugar.core.tracer import get_tracer
from mixin_desugar.errors import CircularCompositionError, ResolutionError, SourcePosition
from mixin_desugar.utils.node_diff import capture_node_source

_REFERENCES = (cst.Name, cst.Attribute, cst.Subscript, cst.Call)
_CONSTANT_NAMES = frozenset({"None", "True", "False"})


class MixinResolver:
  """
  Checks that every mixin operand can be a mixin, and links composition chains.

  Attributes:
      plan (DesugarPlan): The model to validate, updated in place.
      strict (bool): Reject bare names the module never binds.
      deferred (List[str]): Operands left for the runtime to check.
  """

  def __init__(self, plan: DesugarPlan, strict: bool = False):
    self.plan = plan
    self.strict = strict
    self.deferred: List[str] = []

  def resolve(self) -> DesugarPlan:
    """
    Runs all checks.

    Returns:
        DesugarPlan: The same plan, with `super_definition` links filled in.

    Raises:
        ResolutionError: If an operand cannot be a mixin.
        CircularCompositionError: If an `extends` chain revisits itself.
    """
    for definition in self.plan.definitions:
      definition.super_definition = self._link(definition)
    self._check_cycles()

    for definition in self.plan.definitions:
      if definition.super_mixin is not None:
        self._check_operand(definition.super_mixin, definition.scope, definition.position, "extends")

    for application in self.plan.applications:
      for operand in application.mixins:
        self._check_operand(operand, application.scope, application.position, "with")

    return self.plan

  # --- Composition ---

  def _link(self, definition: MixinDefinition) -> Optional[MixinDefinition]:
    operand = definition.super_mixin
    if not isinstance(operand, cst.Name):
      return None

    candidates = self.plan.visible_definitions(operand.value, definition.scope)
    if not candidates:
      return None

    order = {id(d): i for i, d in enumerate(self.plan.definitions)}
    here = order[id(definition)]
    earlier = [d for d in candidates if order[id(d)] < here]
    if earlier:
      return earlier[-1]
    # Forward or self reference: only meaningful for cycle detection.
    later = [d for d in candidates if order[id(d)] >= here]
    return later[0] if later else None

  def _check_cycles(self) -> None:
    for definition in self.plan.definitions:
      visited: List[MixinDefinition] = []
      current: Optional[MixinDefinition] = definition
      while current is not None:
        if any(current is seen for seen in visited):
          start = next(i for i, seen in enumerate(visited) if seen is current)
          chain = [d.display_name for d in visited[start:]] + [current.display_name]
          raise CircularCompositionError(chain, current.position)
        visited.append(current)
        current = current.super_definition

  # --- Operands ---

  def _check_operand(self, operand: cst.BaseExpression, scope: Scope, position: SourcePosition, role: str) -> None:
    source = capture_node_source(operand)

    if not isinstance(operand, _REFERENCES) or (isinstance(operand, cst.Name) and operand.value in _CONSTANT_NAMES):
      raise ResolutionError(f"'{role}' operand '{source}' is not a mixin reference", position)

    if not isinstance(operand, cst.Name):
      self._defer(source, role)
      return

    kinds = self.plan.lookup(operand.value, scope)
    if kinds is None:
      if self.strict:
        raise ResolutionError(f"'{role}' operand '{source}' is not defined as a mixin in this module", position)
      self._defer(source, role)
      return

    if not any(kind.may_be_mixin for kind in kinds):
      described = ", ".join(sorted({kind.value for kind in kinds}))
      raise ResolutionError(f"'{role}' operand '{source}' is bound to a {described}, not a mixin", position)

  def _defer(self, source: str, role: str) -> None:
    self.deferred.append(source)
    get_tracer().log_inspection(source, "deferred", f"'{role}' operand checked at runtime")
