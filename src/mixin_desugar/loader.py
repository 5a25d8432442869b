"""
Execution helpers for mixin source.

Desugars source and executes the result in a fresh module, which is how the
behavior of the desugared program is observed.
"""

import sys
import types
from typing import Optional

from mixin_desugar.config import RuntimeConfig
from mixin_desugar.core.engine import DesugarEngine


def load_source(
  code: str,
  module_name: str = "__mixin__",
  config: Optional[RuntimeConfig] = None,
  register: bool = False,
) -> types.ModuleType:
  """
  Desugars `code` and executes it as a new module.

  Args:
      code (str): Source possibly using the mixin grammar.
      module_name (str): Name given to the new module.
      config (RuntimeConfig, optional): Engine configuration. Defaults are used if None.
      register (bool): If True, the module is also stored in `sys.modules`.

  Returns:
      types.ModuleType: The executed module.

  Raises:
      MixinError: If the source cannot be desugared.
  """
  engine = DesugarEngine(config or RuntimeConfig())
  source = engine.to_source(engine.transform(code))

  module = types.ModuleType(module_name)
  module.__file__ = f"<{module_name}>"
  if register:
    sys.modules[module_name] = module
  exec(compile(source, module.__file__, "exec"), module.__dict__)
  return module
