"""
Tests for Configuration Loading.

Verifies:
1. Defaults when no pyproject.toml section exists.
2. `[tool.mixin_desugar]` values are read from the nearest pyproject.toml.
3. Explicit overrides win over file values.
4. Validation of alias and module path.
"""

import pytest
from pydantic import ValidationError

from mixin_desugar.config import DEFAULT_RUNTIME_ALIAS, DEFAULT_RUNTIME_MODULE, RuntimeConfig, _load_toml_settings


def write_pyproject(directory, body: str):
  (directory / "pyproject.toml").write_text(body, encoding="utf-8")


def test_defaults_without_section(tmp_path):
  write_pyproject(tmp_path, '[project]\nname = "demo"\n')
  config = RuntimeConfig.load(search_path=tmp_path)

  assert config.runtime_module == DEFAULT_RUNTIME_MODULE
  assert config.runtime_alias == DEFAULT_RUNTIME_ALIAS
  assert config.inject_import is True
  assert config.strict_resolution is False


def test_section_is_loaded_from_parent(tmp_path):
  write_pyproject(
    tmp_path,
    '[tool.mixin_desugar]\nruntime_alias = "_mx"\nstrict_resolution = true\n',
  )
  nested = tmp_path / "pkg" / "sub"
  nested.mkdir(parents=True)

  settings, found_in = _load_toml_settings(nested)
  assert found_in == tmp_path.resolve()
  assert settings["runtime_alias"] == "_mx"

  config = RuntimeConfig.load(search_path=nested)
  assert config.runtime_alias == "_mx"
  assert config.strict_resolution is True


def test_overrides_win(tmp_path):
  write_pyproject(tmp_path, "[tool.mixin_desugar]\nstrict_resolution = true\ninject_import = false\n")
  config = RuntimeConfig.load(strict_resolution=False, search_path=tmp_path)

  assert config.strict_resolution is False
  assert config.inject_import is False


def test_broken_toml_falls_back_to_defaults(tmp_path):
  write_pyproject(tmp_path, "[tool.mixin_desugar\n")
  assert _load_toml_settings(tmp_path) == ({}, None)
  assert RuntimeConfig.load(search_path=tmp_path) == RuntimeConfig()


@pytest.mark.parametrize("alias", ["", "1abc", "class", "has space", "dotted.name"])
def test_invalid_alias(alias):
  with pytest.raises(ValidationError):
    RuntimeConfig(runtime_alias=alias)


@pytest.mark.parametrize("module", ["", "pkg..mod", "pkg.1mod", "pkg-mod"])
def test_invalid_module_path(module):
  with pytest.raises(ValidationError):
    RuntimeConfig(runtime_module=module)


def test_values_are_stripped():
  config = RuntimeConfig(runtime_alias="  _rt ", runtime_module=" vendor.rt ")
  assert config.runtime_alias == "_rt"
  assert config.runtime_module == "vendor.rt"
