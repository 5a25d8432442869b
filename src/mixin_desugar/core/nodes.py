"""
Syntax Tree Model for mixin constructs.

These nodes are layered on top of the LibCST tree produced by the grammar
extension. They reference the original LibCST sub-trees (bodies, operand
expressions) rather than copying them, so the transformer can splice them
back into ordinary class statements unchanged.

Scopes are tuples of enclosing block labels (``()`` is the module). They are
only used to resolve bare names during validation.
"""

from dataclasses import dataclass, field
from typing import Dict, List, Optional, Tuple

import libcst as cst

from mixin_desugar.enums import BindingKind
from mixin_desugar.errors import SourcePosition
from mixin_desugar.markers import MarkerKey, MarkerRegistry, get_registry
from mixin_desugar.utils.node_diff import capture_node_source

Scope = Tuple[str, ...]


@dataclass(eq=False)
class MixinDefinition:
  """
  One `mixin` declaration or expression.

  Attributes:
      name: Bound identifier, None for expression-form (anonymous) mixins.
      super_mixin: Operand of the `extends` clause, if any.
      body: Class body, passed through unmodified.
      position: Location of the declaration in the original source.
      bind_target: Assignment target of an expression-form mixin.
      scope: Block the declaration appears in.
      node: The sentinel `ClassDef` this definition was recognized from.
      super_definition: Definition `super_mixin` resolved to within the module.
  """

  name: Optional[str]
  super_mixin: Optional[cst.BaseExpression]
  body: cst.BaseSuite
  position: SourcePosition
  bind_target: Optional[cst.BaseAssignTargetExpression] = None
  scope: Scope = ()
  node: Optional[cst.ClassDef] = None
  super_definition: Optional["MixinDefinition"] = None
  _marker: Optional[MarkerKey] = field(default=None, repr=False)

  @property
  def is_anonymous(self) -> bool:
    return self.name is None

  @property
  def binding_name(self) -> Optional[str]:
    """The simple name this mixin becomes reachable under, if any."""
    if self.name:
      return self.name
    if isinstance(self.bind_target, cst.Name):
      return self.bind_target.value
    return None

  @property
  def display_name(self) -> str:
    if self.name:
      return self.name
    if self.bind_target is not None:
      return f"<mixin bound to {capture_node_source(self.bind_target)}>"
    return "<anonymous mixin>"

  def marker(self, registry: Optional[MarkerRegistry] = None) -> MarkerKey:
    """
    Returns the marker key of this definition, allocating it on first use.

    Args:
        registry: Registry to allocate from (defaults to the process-wide one).

    Returns:
        MarkerKey: Stable key for the lifetime of this definition.
    """
    if self._marker is None:
      self._marker = (registry or get_registry()).key_for(self, self.display_name)
    return self._marker

  @property
  def has_marker(self) -> bool:
    return self._marker is not None


@dataclass(eq=False)
class MixinApplication:
  """
  One `Base with M1, ..., Mn` list inside a class base list.

  Attributes:
      base: The superclass expression left of `with`.
      mixins: Mixin operands in source order (first listed is applied first).
      position: Location of the enclosing class statement.
      class_name: Name of the class whose base list holds the application.
      scope: Block the enclosing class statement appears in.
      node: The base-list `Arg` holding the sentinel call.
  """

  base: cst.BaseExpression
  mixins: List[cst.BaseExpression]
  position: SourcePosition
  class_name: str = ""
  scope: Scope = ()
  node: Optional[cst.Arg] = None

  @property
  def mixin_sources(self) -> List[str]:
    return [capture_node_source(m) for m in self.mixins]


@dataclass
class DesugarPlan:
  """
  All mixin constructs of a module, in source order, plus the name bindings
  observed in each scope.
  """

  definitions: List[MixinDefinition] = field(default_factory=list)
  applications: List[MixinApplication] = field(default_factory=list)
  bindings: Dict[Scope, Dict[str, List[BindingKind]]] = field(default_factory=dict)

  @property
  def is_empty(self) -> bool:
    return not self.definitions and not self.applications

  def bind(self, scope: Scope, name: str, kind: BindingKind) -> None:
    self.bindings.setdefault(scope, {}).setdefault(name, []).append(kind)

  def lookup(self, name: str, scope: Scope) -> Optional[List[BindingKind]]:
    """
    Finds the binding kinds of `name` in the nearest enclosing scope that binds it.

    Args:
        name: The bare identifier.
        scope: Scope the reference appears in.

    Returns:
        Optional[List[BindingKind]]: Kinds in binding order, or None if unbound.
    """
    for depth in range(len(scope), -1, -1):
      kinds = self.bindings.get(scope[:depth], {}).get(name)
      if kinds:
        return kinds
    return None

  def visible_definitions(self, name: str, scope: Scope) -> List[MixinDefinition]:
    """Definitions reachable as `name` from `scope`, nearest scope first, source order."""
    for depth in range(len(scope), -1, -1):
      prefix = scope[:depth]
      found = [d for d in self.definitions if d.scope == prefix and d.binding_name == name]
      if found:
        return found
    return []
