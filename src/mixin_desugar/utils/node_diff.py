"""
Node Rendering for messages and trace events.

Renders detached LibCST nodes (operands, generated factories) to source text.
"""

import libcst as cst

# A dummy module used as a context to render detached nodes.
_RENDER_CTX = cst.parse_module("")


def capture_node_source(node: cst.CSTNode) -> str:
  """
  Renders a LibCST node into its Python source code string representation.

  Args:
      node: The CST node to serialise.

  Returns:
      str: The Python code string, stripped of surrounding whitespace.
  """
  return _RENDER_CTX.code_for_node(node).strip()
