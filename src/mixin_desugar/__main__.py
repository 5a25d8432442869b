"""
Entry point for module execution (``python -m mixin_desugar``).

This module delegates execution to the CLI handler in ``mixin_desugar.cli.__main__``.
"""

import sys
from mixin_desugar.cli.__main__ import main

if __name__ == "__main__":
  sys.exit(main())
