"""
Mixin Collector.

A LibCST visitor run over the sentinel tree produced by `parse_extended`. It
builds the `DesugarPlan`:

1.  **Definitions**: `ClassDef` nodes whose only base is a ``__mixin_decl__(...)``
    call become `MixinDefinition` entries.
2.  **Applications**: base-list arguments holding a ``__mixin_with__(...)`` call
    become `MixinApplication` entries.
3.  **Bindings**: simple-name bindings per scope (classes, functions, imports,
    literal assignments, parameters), used later by the `MixinResolver`.

Must be run through a `libcst.metadata.MetadataWrapper` to receive positions.
"""

from typing import List, Optional

import libcst as cst
from libcst.metadata import PositionProvider

from mixin_desugar.core.grammar import DECL_SENTINEL, EXPR_CLASS, WITH_SENTINEL
from mixin_desugar.core.nodes import DesugarPlan, MixinApplication, MixinDefinition, Scope
from mixin_desugar.enums import BindingKind
from mixin_desugar.errors import MixinSyntaxError, SourcePosition

_LITERALS = (
  cst.SimpleString,
  cst.ConcatenatedString,
  cst.FormattedString,
  cst.Integer,
  cst.Float,
  cst.Imaginary,
  cst.List,
  cst.Tuple,
  cst.Dict,
  cst.Set,
  cst.ListComp,
  cst.SetComp,
  cst.DictComp,
  cst.Lambda,
)


def sentinel_call(node: cst.BaseExpression, name: str) -> Optional[cst.Call]:
  """Returns `node` if it is a call of the sentinel `name`, else None."""
  if isinstance(node, cst.Call) and isinstance(node.func, cst.Name) and node.func.value == name:
    return node
  return None


def _keyword(call: cst.Call, name: str) -> Optional[cst.BaseExpression]:
  for arg in call.args:
    if arg.keyword is not None and arg.keyword.value == name:
      return arg.value
  return None


def _param_names(params: cst.Parameters) -> List[str]:
  names = [p.name.value for p in (*params.posonly_params, *params.params, *params.kwonly_params)]
  for star in (params.star_arg, params.star_kwarg):
    if isinstance(star, cst.Param):
      names.append(star.name.value)
  return names


class MixinCollector(cst.CSTVisitor):
  """
  Gathers mixin definitions, applications and scope bindings.

  Attributes:
      plan (DesugarPlan): The collected model, filled during traversal.
  """

  METADATA_DEPENDENCIES = (PositionProvider,)

  def __init__(self):
    self.plan = DesugarPlan()
    self._scope: List[str] = []

  @property
  def scope(self) -> Scope:
    return tuple(self._scope)

  def _position(self, node: cst.CSTNode) -> SourcePosition:
    start = self.get_metadata(PositionProvider, node).start
    return SourcePosition(start.line, start.column)

  def _declaration(self, node: cst.ClassDef) -> Optional[cst.Call]:
    if len(node.bases) != 1 or node.keywords:
      return None
    return sentinel_call(node.bases[0].value, DECL_SENTINEL)

  # --- Classes & Mixins ---

  def visit_ClassDef(self, node: cst.ClassDef) -> Optional[bool]:
    position = self._position(node)
    decl = self._declaration(node)

    if decl is not None:
      if node.decorators:
        raise MixinSyntaxError("decorators are not supported on mixin declarations", position)
      is_expression = node.name.value == EXPR_CLASS
      bind_target = _keyword(decl, "bind") if is_expression else None
      definition = MixinDefinition(
        name=None if is_expression else node.name.value,
        super_mixin=_keyword(decl, "extends"),
        body=node.body,
        position=position,
        bind_target=bind_target,
        scope=self.scope,
        node=node,
      )
      self.plan.definitions.append(definition)
      if definition.binding_name:
        self.plan.bind(self.scope, definition.binding_name, BindingKind.MIXIN)
      self._scope.append(f"mixin:{definition.display_name}@{position.line}")
      return True

    for arg in node.bases:
      call = sentinel_call(arg.value, WITH_SENTINEL)
      if call is None:
        continue
      self.plan.applications.append(
        MixinApplication(
          base=call.args[0].value,
          mixins=[a.value for a in call.args[1:]],
          position=position,
          class_name=node.name.value,
          scope=self.scope,
          node=arg,
        )
      )

    self.plan.bind(self.scope, node.name.value, BindingKind.CLASS)
    self._scope.append(f"class:{node.name.value}@{position.line}")
    return True

  def leave_ClassDef(self, original_node: cst.ClassDef) -> None:
    self._scope.pop()

  # --- Other Bindings ---

  def visit_FunctionDef(self, node: cst.FunctionDef) -> Optional[bool]:
    self.plan.bind(self.scope, node.name.value, BindingKind.FUNCTION)
    self._scope.append(f"def:{node.name.value}@{self._position(node).line}")
    for name in _param_names(node.params):
      self.plan.bind(self.scope, name, BindingKind.UNKNOWN)
    return True

  def leave_FunctionDef(self, original_node: cst.FunctionDef) -> None:
    self._scope.pop()

  def visit_Import(self, node: cst.Import) -> Optional[bool]:
    for alias in node.names:
      if alias.asname is not None and isinstance(alias.asname.name, cst.Name):
        self.plan.bind(self.scope, alias.asname.name.value, BindingKind.IMPORT)
      else:
        root = alias.name
        while isinstance(root, cst.Attribute):
          root = root.value
        if isinstance(root, cst.Name):
          self.plan.bind(self.scope, root.value, BindingKind.IMPORT)
    return False

  def visit_ImportFrom(self, node: cst.ImportFrom) -> Optional[bool]:
    if isinstance(node.names, cst.ImportStar):
      return False
    for alias in node.names:
      bound = alias.asname.name if alias.asname is not None else alias.name
      if isinstance(bound, cst.Name):
        self.plan.bind(self.scope, bound.value, BindingKind.IMPORT)
    return False

  def _bind_assignment(self, target: cst.BaseExpression, value: Optional[cst.BaseExpression]) -> None:
    if not isinstance(target, cst.Name):
      return
    kind = BindingKind.VALUE if isinstance(value, _LITERALS) else BindingKind.UNKNOWN
    if isinstance(value, cst.Name) and value.value in ("None", "True", "False"):
      kind = BindingKind.VALUE
    self.plan.bind(self.scope, target.value, kind)

  def visit_Assign(self, node: cst.Assign) -> Optional[bool]:
    for target in node.targets:
      self._bind_assignment(target.target, node.value)
    return True

  def visit_AnnAssign(self, node: cst.AnnAssign) -> Optional[bool]:
    self._bind_assignment(node.target, node.value)
    return True
