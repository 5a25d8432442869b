"""
Runtime Import Injection.

Inserts ``import mixin_desugar.runtime as _mixin_runtime`` into a desugared
module. The import goes below the module docstring and any
``from __future__`` imports, and is skipped if the module already has it.
"""

from typing import Sequence

import libcst as cst
from libcst import matchers as m

from mixin_desugar.core.tracer import get_tracer

_DOCSTRING = m.SimpleStatementLine(body=[m.Expr(value=m.SimpleString() | m.ConcatenatedString())])
_FUTURE_IMPORT = m.SimpleStatementLine(body=[m.ZeroOrMore(), m.ImportFrom(module=m.Name("__future__")), m.ZeroOrMore()])


def header_length(body: Sequence[cst.BaseStatement]) -> int:
  """
  Counts the leading statements that must stay above any injected import.

  Args:
      body: Statements of a module.

  Returns:
      int: Number of statements forming the docstring / ``__future__`` header.
  """
  count = 0
  for idx, stmt in enumerate(body):
    if (idx == 0 and m.matches(stmt, _DOCSTRING)) or m.matches(stmt, _FUTURE_IMPORT):
      count = idx + 1
      continue
    break
  return count


def normalized_code(stmt: cst.SimpleStatementLine) -> str:
  """Source of the statement line without comments and with whitespace collapsed."""
  renderer = cst.Module(body=[])
  return "; ".join(" ".join(renderer.code_for_node(small).split()) for small in stmt.body)


class RuntimeImportInjector(cst.CSTTransformer):
  """
  Adds the runtime-library import at module level.

  Attributes:
      runtime_module (str): Dotted module path to import.
      alias (str): Name the desugared code refers to the module by.
      injected (bool): True once the import has been added.
  """

  def __init__(self, runtime_module: str, alias: str):
    self.runtime_module = runtime_module
    self.alias = alias
    self.injected = False

  def build_import(self) -> cst.SimpleStatementLine:
    return cst.parse_statement(f"import {self.runtime_module} as {self.alias}\n")

  def leave_Module(self, original_node: cst.Module, updated_node: cst.Module) -> cst.Module:
    statement = self.build_import()
    wanted = normalized_code(statement)

    body = list(updated_node.body)
    if any(isinstance(stmt, cst.SimpleStatementLine) and normalized_code(stmt) == wanted for stmt in body):
      return updated_node

    at = header_length(body)
    self.injected = True
    get_tracer().log_import(wanted)
    return updated_node.with_changes(body=[*body[:at], statement, *body[at:]])
