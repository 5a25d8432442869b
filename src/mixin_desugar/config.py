"""
Runtime Configuration Store.

Settings are read from the ``[tool.mixin_desugar]`` table of the nearest
``pyproject.toml`` and may be overridden by explicit arguments.
"""

import keyword
import sys
from pathlib import Path
from typing import Any, Dict, Optional, Tuple

from pydantic import BaseModel, Field, field_validator

if sys.version_info >= (3, 11):
  import tomllib
else:
  import tomli as tomllib

DEFAULT_RUNTIME_MODULE = "mixin_desugar.runtime"
DEFAULT_RUNTIME_ALIAS = "_mixin_runtime"
SECTION = "mixin_desugar"


class RuntimeConfig(BaseModel):
  """
  Global configuration container for the desugaring engine.
  """

  runtime_module: str = Field(DEFAULT_RUNTIME_MODULE, description="Module providing the `mixin` decorator at runtime.")
  runtime_alias: str = Field(DEFAULT_RUNTIME_ALIAS, description="Name desugared code binds the runtime module to.")
  inject_import: bool = Field(True, description="If True, add the runtime import to desugared modules.")
  strict_resolution: bool = Field(
    False,
    description="If True, `extends`/`with` operands must be bound in the module. If False, unbound names are checked at runtime.",
  )

  @field_validator("runtime_alias")
  @classmethod
  def validate_alias(cls, v: str) -> str:
    """
    Ensures the alias is a usable Python identifier.

    Raises:
        ValueError: If the alias is not an identifier or is a keyword.
    """
    v_clean = v.strip()
    if not v_clean.isidentifier() or keyword.iskeyword(v_clean):
      raise ValueError(f"Invalid runtime alias: '{v}'")
    return v_clean

  @field_validator("runtime_module")
  @classmethod
  def validate_module(cls, v: str) -> str:
    """
    Ensures the runtime module is a dotted path of identifiers.

    Raises:
        ValueError: If any segment is not an identifier.
    """
    v_clean = v.strip()
    if not v_clean or not all(part.isidentifier() for part in v_clean.split(".")):
      raise ValueError(f"Invalid runtime module path: '{v}'")
    return v_clean

  @classmethod
  def load(
    cls,
    runtime_module: Optional[str] = None,
    runtime_alias: Optional[str] = None,
    inject_import: Optional[bool] = None,
    strict_resolution: Optional[bool] = None,
    search_path: Optional[Path] = None,
  ) -> "RuntimeConfig":
    """
    Loads configuration from pyproject.toml and overrides with explicit arguments.

    Args:
        runtime_module (Optional[str]): Override for the runtime module path.
        runtime_alias (Optional[str]): Override for the runtime alias.
        inject_import (Optional[bool]): Override for import injection.
        strict_resolution (Optional[bool]): Override for strict resolution.
        search_path (Optional[Path]): Directory to start searching for TOML config.

    Returns:
        RuntimeConfig: The fully resolved configuration object.
    """
    settings, _ = _load_toml_settings(search_path or Path.cwd())
    overrides = {
      "runtime_module": runtime_module,
      "runtime_alias": runtime_alias,
      "inject_import": inject_import,
      "strict_resolution": strict_resolution,
    }
    known = {key: value for key, value in settings.items() if key in cls.model_fields}
    known.update({key: value for key, value in overrides.items() if value is not None})
    return cls(**known)


def find_pyproject(start_path: Path) -> Optional[Path]:
  """Returns the nearest ``pyproject.toml`` at or above `start_path`."""
  here = start_path.resolve()
  return next((d / "pyproject.toml" for d in (here, *here.parents) if (d / "pyproject.toml").is_file()), None)


def _load_toml_settings(start_path: Path) -> Tuple[Dict[str, Any], Optional[Path]]:
  """
  Reads the ``[tool.mixin_desugar]`` table of the nearest pyproject.toml.

  An unreadable or malformed file counts as having no settings.

  Args:
      start_path (Path): Directory to start the upward search from.

  Returns:
      Tuple[Dict, Optional[Path]]: The settings and the directory holding the file.
  """
  pyproject = find_pyproject(start_path)
  if pyproject is None:
    return {}, None

  try:
    document = tomllib.loads(pyproject.read_text(encoding="utf-8"))
  except (OSError, UnicodeDecodeError, tomllib.TOMLDecodeError):
    return {}, None

  section = document.get("tool", {}).get(SECTION, {})
  return dict(section), pyproject.parent
