"""
CLI Command Handlers.

Implements `mixin-desugar convert` and `mixin-desugar check`:
1. Configuration loading (pyproject.toml + CLI overrides).
2. Desugaring via the Engine.
3. Output writing, trace logging and a summary table.
"""

import json
from pathlib import Path
from typing import Dict, Optional

from rich.markup import escape
from rich.table import Table

from mixin_desugar.config import RuntimeConfig
from mixin_desugar.core.conversion_result import ConversionResult
from mixin_desugar.core.engine import DesugarEngine
from mixin_desugar.utils.console import console, log_error, log_info, log_success, log_warning


def handle_convert(
  input_path: Path,
  output_path: Optional[Path],
  strict: Optional[bool],
  inject_import: Optional[bool],
  json_trace_path: Optional[Path] = None,
) -> int:
  """
  Handles the 'convert' command execution.

  Args:
      input_path: Source file to desugar.
      output_path: Destination file. Desugared code is printed if None.
      strict: Override for strict operand resolution.
      inject_import: Override for runtime import injection.
      json_trace_path: Optional path to dump the execution trace as JSON.

  Returns:
      int: Exit code (0 for success, 1 for failure).
  """
  if not input_path.is_file():
    log_error(f"Input not found: {input_path}")
    return 1

  config = RuntimeConfig.load(
    strict_resolution=strict,
    inject_import=inject_import,
    search_path=input_path.parent,
  )
  result = _convert_single_file(input_path, output_path, config, json_trace_path)
  _print_summary({str(input_path): result})
  return 0 if result.success else 1


def handle_check(input_path: Path, strict: Optional[bool]) -> int:
  """
  Handles the 'check' command: desugars without writing anything.

  Returns:
      int: Exit code (0 if the file desugars cleanly, 1 otherwise).
  """
  if not input_path.is_file():
    log_error(f"Input not found: {input_path}")
    return 1

  config = RuntimeConfig.load(strict_resolution=strict, search_path=input_path.parent)
  result = DesugarEngine(config=config).run(input_path.read_text(encoding="utf-8"))
  if not result.success:
    for err in result.errors:
      log_error(f"{input_path}: {escape(err)}")
    return 1

  for operand in result.deferred:
    log_warning(f"{input_path}: '{escape(operand)}' will be checked at runtime")
  log_success(f"{input_path}: {len(result.mixins)} mixins, {result.applications} applications")
  return 0


def _convert_single_file(
  input_path: Path,
  output_path: Optional[Path],
  config: RuntimeConfig,
  json_trace_path: Optional[Path] = None,
) -> ConversionResult:
  """
  Desugars one file and writes or prints the result.

  Args:
      input_path: Source file path.
      output_path: Destination file path, or None to print.
      config: Runtime configuration object.
      json_trace_path: Optional path to dump trace events.

  Returns:
      ConversionResult: The engine result.
  """
  log_info(f"Desugaring [path]{input_path}[/path]")
  engine = DesugarEngine(config=config)
  result = engine.run(input_path.read_text(encoding="utf-8"))

  if json_trace_path:
    json_trace_path.parent.mkdir(parents=True, exist_ok=True)
    json_trace_path.write_text(json.dumps(result.trace_events, indent=2, default=str), encoding="utf-8")

  if not result.success:
    for err in result.errors:
      log_error(escape(err))
    return result

  if output_path:
    output_path.parent.mkdir(parents=True, exist_ok=True)
    output_path.write_text(result.code, encoding="utf-8")
    log_success(f"Wrote [path]{output_path}[/path]")
  else:
    console.print(result.code, markup=False, highlight=False)

  return result


def _print_summary(results: Dict[str, ConversionResult]) -> None:
  table = Table(title="Desugaring Summary")
  table.add_column("File", style="path")
  table.add_column("Mixins", justify="right")
  table.add_column("Applications", justify="right")
  table.add_column("Status")

  for name, result in results.items():
    status = "[success]ok[/success]" if result.success else "[error]failed[/error]"
    table.add_row(name, str(len(result.mixins)), str(result.applications), status)

  console.print(table)
