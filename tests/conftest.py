"""
Pytest Configuration and Fixtures.

Includes:
- Syspath patching for local imports.
- Tracer and console isolation so tests never see each other's events.
- Helpers for running mixin source end to end.
"""

import sys
import textwrap
from pathlib import Path

import pytest

# Add src to path so we can import 'mixin_desugar' without installing it
src_path = Path(__file__).parent.parent / "src"
sys.path.insert(0, str(src_path))

from mixin_desugar.core.tracer import reset_tracer
from mixin_desugar.loader import load_source
from mixin_desugar.utils.console import reset_console


@pytest.fixture(autouse=True)
def isolate_tracer():
  """Gives every test a fresh global trace logger."""
  reset_tracer()
  yield
  reset_tracer()


@pytest.fixture
def clean_console():
  yield
  reset_console()


@pytest.fixture
def run_mixins():
  """
  Returns a callable that dedents, desugars and executes source, returning
  the resulting module.
  """

  def _run(code: str):
    return load_source(textwrap.dedent(code))

  return _run
