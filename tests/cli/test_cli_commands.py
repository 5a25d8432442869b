"""
Tests for the CLI `convert` and `check` commands.

Verifies:
1. `convert` writes desugared output to `--out` or stdout.
2. `convert --json-trace` dumps the trace events.
3. Failures produce exit code 1 and an error message.
4. `check` validates without writing and honors `--strict`.
"""

import json
import textwrap

import pytest
from rich.console import Console

from mixin_desugar.cli.__main__ import main
from mixin_desugar.utils.console import THEME, set_console

SOURCE = textwrap.dedent(
  """
  mixin Tagged:
      value = 1

  class C(object with Tagged):
      pass
  """
)


@pytest.fixture
def captured(clean_console):
  """Routes rich output and logging into a recording console."""
  recorder = Console(record=True, width=200, theme=THEME)
  set_console(recorder)
  return recorder


def test_convert_writes_output_file(tmp_path, captured):
  src = tmp_path / "model.py"
  src.write_text(SOURCE, encoding="utf-8")
  out = tmp_path / "build" / "model.py"

  assert main(["convert", str(src), "--out", str(out)]) == 0

  generated = out.read_text(encoding="utf-8")
  assert "import mixin_desugar.runtime as _mixin_runtime" in generated
  assert "class C(Tagged(object)):" in generated
  assert "Desugaring Summary" in captured.export_text()


def test_convert_prints_to_stdout(tmp_path, captured):
  src = tmp_path / "model.py"
  src.write_text(SOURCE, encoding="utf-8")

  assert main(["convert", str(src), "--no-import"]) == 0

  text = captured.export_text()
  assert 'def Tagged(__mixin_superclass__):' in text
  assert "import mixin_desugar.runtime" not in text


def test_convert_dumps_json_trace(tmp_path, captured):
  src = tmp_path / "model.py"
  src.write_text(SOURCE, encoding="utf-8")
  trace = tmp_path / "trace" / "events.json"

  assert main(["convert", str(src), "--out", str(tmp_path / "out.py"), "--json-trace", str(trace)]) == 0

  events = json.loads(trace.read_text(encoding="utf-8"))
  assert any(e["type"] == "marker_allocation" for e in events)


def test_convert_reports_errors(tmp_path, captured):
  src = tmp_path / "broken.py"
  src.write_text("class C(A, B with M):\n    pass\n", encoding="utf-8")
  out = tmp_path / "out.py"

  assert main(["convert", str(src), "--out", str(out)]) == 1
  assert not out.exists()
  assert "exactly one superclass" in captured.export_text()


def test_convert_missing_input(tmp_path, captured):
  assert main(["convert", str(tmp_path / "missing.py")]) == 1
  assert "Input not found" in captured.export_text()


def test_check_passes_and_warns_about_deferred(tmp_path, captured):
  src = tmp_path / "model.py"
  src.write_text("class C(object with pkg.Shared):\n    pass\n", encoding="utf-8")

  assert main(["check", str(src)]) == 0
  text = captured.export_text()
  assert "pkg.Shared" in text
  assert "checked at runtime" in text


def test_check_strict_fails_on_unbound(tmp_path, captured):
  src = tmp_path / "model.py"
  src.write_text("class C(object with Missing):\n    pass\n", encoding="utf-8")

  assert main(["check", str(src)]) == 0
  assert main(["check", str(src), "--strict"]) == 1
  assert "not defined as a mixin" in captured.export_text()


def test_strict_from_pyproject(tmp_path, captured):
  (tmp_path / "pyproject.toml").write_text("[tool.mixin_desugar]\nstrict_resolution = true\n", encoding="utf-8")
  src = tmp_path / "model.py"
  src.write_text("class C(object with Missing):\n    pass\n", encoding="utf-8")

  assert main(["check", str(src)]) == 1


def test_version_flag(capsys):
  with pytest.raises(SystemExit) as exc:
    main(["--version"])
  assert exc.value.code == 0
  assert "0.1.0" in capsys.readouterr().out
