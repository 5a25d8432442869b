"""
Private Name Mangling for mixin bodies.

Python mangles ``__name`` identifiers using the name of the innermost
enclosing class statement. Desugared bodies are compiled inside a class with a
generated name, so the mangling is done here instead, against the mixin's own
name: ``self.__n`` in ``mixin Counter`` becomes ``self._Counter__n``, the same
name a hand-written ``class Counter`` would produce. Names already mangled this
way no longer start with ``__`` and are left alone by the compiler.

Follows the compiler's rules:

- dunder names (``__init__``) and names without a leading ``__`` are kept,
- keyword argument names at call sites are kept,
- dotted module paths in imports are kept,
- nested class bodies are skipped (they mangle against their own name),
- string entries of a body-level ``__slots__`` are mangled too.
"""

import libcst as cst


def mangle(name: str, owner: str) -> str:
  """
  Applies Python's private name transformation.

  Args:
      name: Identifier as written.
      owner: Name of the class the identifier appears in.

  Returns:
      str: ``_<owner>__x`` for private names, `name` otherwise.
  """
  if not name.startswith("__") or name.endswith("__") or "." in name:
    return name
  stripped = owner.lstrip("_")
  if not stripped:
    return name
  return f"_{stripped}{name}"


class PrivateNameMangler(cst.CSTTransformer):
  """
  Rewrites private identifiers of one class body.

  Attributes:
      owner (str): Class name used for mangling.
      renamed (int): Number of identifiers rewritten.
  """

  def __init__(self, owner: str):
    self.owner = owner
    self.renamed = 0
    self._function_depth = 0

  def _name(self, node: cst.Name) -> cst.Name:
    mangled = mangle(node.value, self.owner)
    if mangled == node.value:
      return node
    self.renamed += 1
    return node.with_changes(value=mangled)

  def leave_Name(self, original_node: cst.Name, updated_node: cst.Name) -> cst.Name:
    return self._name(updated_node)

  def leave_Arg(self, original_node: cst.Arg, updated_node: cst.Arg) -> cst.Arg:
    if original_node.keyword is None:
      return updated_node
    if updated_node.keyword.value != original_node.keyword.value:
      self.renamed -= 1
    return updated_node.with_changes(keyword=original_node.keyword)

  # --- Scopes ---

  def visit_FunctionDef(self, node: cst.FunctionDef) -> bool:
    self._function_depth += 1
    return True

  def leave_FunctionDef(self, original_node: cst.FunctionDef, updated_node: cst.FunctionDef) -> cst.FunctionDef:
    self._function_depth -= 1
    return updated_node

  def visit_Lambda(self, node: cst.Lambda) -> bool:
    self._function_depth += 1
    return True

  def leave_Lambda(self, original_node: cst.Lambda, updated_node: cst.Lambda) -> cst.Lambda:
    self._function_depth -= 1
    return updated_node

  def visit_ClassDef(self, node: cst.ClassDef) -> bool:
    return False

  def leave_ClassDef(self, original_node: cst.ClassDef, updated_node: cst.ClassDef) -> cst.ClassDef:
    # Header parts are evaluated in this body, the nested body is not.
    return updated_node.with_changes(
      name=self._name(updated_node.name),
      bases=[arg.visit(self) for arg in updated_node.bases],
      keywords=[arg.visit(self) for arg in updated_node.keywords],
      decorators=[dec.visit(self) for dec in updated_node.decorators],
    )

  # --- Imports ---

  def visit_Import(self, node: cst.Import) -> bool:
    return False

  def visit_ImportFrom(self, node: cst.ImportFrom) -> bool:
    return False

  def leave_Import(self, original_node: cst.Import, updated_node: cst.Import) -> cst.Import:
    return updated_node.with_changes(names=[self._alias(alias) for alias in updated_node.names])

  def leave_ImportFrom(self, original_node: cst.ImportFrom, updated_node: cst.ImportFrom) -> cst.ImportFrom:
    if isinstance(updated_node.module, cst.Name):
      updated_node = updated_node.with_changes(module=self._name(updated_node.module))
    if isinstance(updated_node.names, cst.ImportStar):
      return updated_node
    return updated_node.with_changes(names=[self._alias(alias) for alias in updated_node.names])

  def _alias(self, alias: cst.ImportAlias) -> cst.ImportAlias:
    changes = {}
    if isinstance(alias.name, cst.Name):
      changes["name"] = self._name(alias.name)
    if alias.asname is not None and isinstance(alias.asname.name, cst.Name):
      changes["asname"] = alias.asname.with_changes(name=self._name(alias.asname.name))
    return alias.with_changes(**changes)

  # --- Slots ---

  def leave_Assign(self, original_node: cst.Assign, updated_node: cst.Assign) -> cst.Assign:
    if self._function_depth or len(updated_node.targets) != 1:
      return updated_node
    target = updated_node.targets[0].target
    if not (isinstance(target, cst.Name) and target.value == "__slots__"):
      return updated_node
    return updated_node.with_changes(value=self._slots(updated_node.value))

  def _slots(self, value: cst.BaseExpression) -> cst.BaseExpression:
    if isinstance(value, cst.SimpleString):
      return self._slot_string(value)
    if isinstance(value, (cst.Tuple, cst.List)):
      return value.with_changes(
        elements=[
          el.with_changes(value=self._slot_string(el.value)) if isinstance(el.value, cst.SimpleString) else el
          for el in value.elements
        ]
      )
    return value

  def _slot_string(self, node: cst.SimpleString) -> cst.SimpleString:
    text = node.evaluated_value
    if not isinstance(text, str):
      return node
    mangled = mangle(text, self.owner)
    if mangled == text:
      return node
    self.renamed += 1
    return node.with_changes(value=repr(mangled))
