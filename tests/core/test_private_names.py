"""
Tests for private name mangling of mixin bodies.

Verifies:
1. The name transformation itself (dunders, leading underscores in the owner).
2. Which identifiers of a body are rewritten and which are kept.
"""

import textwrap

import libcst as cst
import pytest

from mixin_desugar.core.private_names import PrivateNameMangler, mangle


@pytest.mark.parametrize(
  "name, owner, expected",
  [
    ("__n", "Counter", "_Counter__n"),
    ("__n", "_Counter", "_Counter__n"),
    ("__n", "__Hidden", "_Hidden__n"),
    ("__n", "___", "__n"),
    ("__init__", "Counter", "__init__"),
    ("_n", "Counter", "_n"),
    ("n", "Counter", "n"),
  ],
)
def test_mangle(name, owner, expected):
  assert mangle(name, owner) == expected


def _mangled(code: str, owner: str = "M") -> str:
  module = cst.parse_module(textwrap.dedent(code))
  mangler = PrivateNameMangler(owner)
  return module.visit(mangler).code


def test_attributes_definitions_and_parameters():
  out = _mangled(
    """
    __limit = 3

    def __check(self, __value):
        self.__seen = __value
        return lambda __x: __x
    """
  )
  assert "_M__limit = 3" in out
  assert "def _M__check(self, _M__value):" in out
  assert "self._M__seen = _M__value" in out
  assert "lambda _M__x: _M__x" in out


def test_call_keywords_are_kept():
  out = _mangled("options = dict(__a=1, key=__b)\n")
  assert out == "options = dict(__a=1, key=_M__b)\n"


def test_nested_class_body_is_skipped():
  out = _mangled(
    """
    @__register
    class __Inner(__Base):
        __depth = 1
    """
  )
  assert "@_M__register" in out
  assert "class _M__Inner(_M__Base):" in out
  assert "    __depth = 1" in out


def test_imports_mangle_undotted_names():
  out = _mangled(
    """
    import __vendored
    import __pkg.mod
    from os import sep as __sep, path
    from __pkg import __thing
    """
  )
  assert "import _M__vendored\n" in out
  assert "import __pkg.mod\n" in out
  assert "from os import sep as _M__sep, path\n" in out
  assert "from _M__pkg import _M__thing\n" in out


def test_slots_entries_follow_the_owner():
  out = _mangled(
    """
    __slots__ = ("__token", "plain")

    def method(self):
        __slots__ = "__local"
    """
  )
  assert "__slots__ = ('_M__token', \"plain\")" in out
  assert '__slots__ = "__local"' in out


def test_counts_renamed_identifiers():
  mangler = PrivateNameMangler("M")
  cst.parse_module("f(__a=__b)\nx = __c\n").visit(mangler)
  assert mangler.renamed == 2
