"""
mixin-desugar Package.

Declarative mixins for Python classes, implemented as a source-to-source
transform plus a small runtime library.

Usage
-----

Simple String Conversion
^^^^^^^^^^^^^^^^^^^^^^^^

.. code-block:: python

    import mixin_desugar as mds

    code = '''
    mixin Tagged:
        value = 1
        def get(self):
            return self.value

    class C(object with Tagged):
        pass
    '''
    print(mds.desugar(code))

Advanced Usage (Engine)
^^^^^^^^^^^^^^^^^^^^^^^

.. code-block:: python

    from mixin_desugar import DesugarEngine, RuntimeConfig

    engine = DesugarEngine(config=RuntimeConfig(strict_resolution=True))
    res = engine.run(code)

    if res.success:
        print(res.code)
    else:
        print(f"Errors: {res.errors}")
"""

from typing import Optional

from mixin_desugar.config import RuntimeConfig
from mixin_desugar.core.conversion_result import ConversionResult
from mixin_desugar.core.engine import DesugarEngine
from mixin_desugar.errors import (
  CircularCompositionError,
  IdentityConflictError,
  MixinError,
  MixinSyntaxError,
  ResolutionError,
)
from mixin_desugar.loader import load_source
from mixin_desugar.runtime import Mixin, mixin_chain

__version__ = "0.1.0"


def desugar(code: str, config: Optional[RuntimeConfig] = None) -> str:
  """
  Rewrites mixin declarations and `with` applications into plain Python.

  Args:
      code (str): The source code to convert.
      config (RuntimeConfig, optional): Engine settings. Defaults are used if None.

  Returns:
      str: Python source depending only on `mixin_desugar.runtime`.

  Raises:
      MixinSyntaxError: Malformed mixin grammar.
      ResolutionError: An `extends` or `with` operand cannot be a mixin.
      CircularCompositionError: A composition chain revisits itself.
  """
  engine = DesugarEngine(config=config or RuntimeConfig())
  return engine.to_source(engine.transform(code))


__all__ = [
  "desugar",
  "load_source",
  "DesugarEngine",
  "ConversionResult",
  "RuntimeConfig",
  "Mixin",
  "mixin_chain",
  "MixinError",
  "MixinSyntaxError",
  "ResolutionError",
  "CircularCompositionError",
  "IdentityConflictError",
  "__version__",
]
