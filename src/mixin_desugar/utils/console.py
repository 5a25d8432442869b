"""
Logging and Console Utilities.

All user-facing output goes through the ``mixin_desugar`` logger, rendered by
a `rich.logging.RichHandler`, or through the module-level `console`.

`console` is a stable proxy: tests and embedding applications redirect output
with `set_console` (for example to ``Console(record=True)``) and every module
that imported `console` follows along, together with the logger's handler.
"""

import logging
from typing import Any, Optional

from rich.console import Console
from rich.logging import RichHandler
from rich.theme import Theme

# Between INFO and WARNING.
SUCCESS_LEVEL_NUM = 25
logging.addLevelName(SUCCESS_LEVEL_NUM, "SUCCESS")

LOGGER_NAME = "mixin_desugar"
logger = logging.getLogger(LOGGER_NAME)

THEME = Theme(
  {
    "logging.level.success": "green",
    "success": "green",
    "warning": "yellow",
    "error": "bold red",
    "path": "bold blue",
    "mixin": "bold magenta",
    "marker": "dim cyan",
  }
)

_PREFIXES = {
  logging.INFO: "",
  SUCCESS_LEVEL_NUM: "✅ ",
  logging.WARNING: "⚠️  ",
  logging.ERROR: "❌ ",
}

_handler: Optional[RichHandler] = None


def _attach(backend: Console) -> None:
  """Points the package logger at `backend`, replacing the previous handler."""
  global _handler
  if _handler is not None:
    logger.removeHandler(_handler)

  _handler = RichHandler(
    console=backend,
    show_time=False,
    show_path=False,
    markup=True,
    rich_tracebacks=True,
  )
  logger.addHandler(_handler)
  logger.setLevel(logging.INFO)
  logger.propagate = False


class _ConsoleProxy:
  """
  Forwards attribute access to the active `rich.console.Console`.
  """

  def __init__(self) -> None:
    self._backend = Console(theme=THEME)
    _attach(self._backend)

  @property
  def backend(self) -> Console:
    return self._backend

  def swap(self, backend: Optional[Console] = None) -> None:
    self._backend = backend if backend is not None else Console(theme=THEME)
    _attach(self._backend)

  def print(self, *args: Any, **kwargs: Any) -> None:
    self._backend.print(*args, **kwargs)

  def __getattr__(self, name: str) -> Any:
    return getattr(self._backend, name)


console = _ConsoleProxy()


def set_console(new_console: Console) -> None:
  """
  Redirects console output and package logging to `new_console`.

  Args:
      new_console (Console): The Rich console to use from now on.
  """
  console.swap(new_console)


def reset_console() -> None:
  """Goes back to a fresh standard-output console."""
  console.swap()


def _log(level: int, msg: str) -> None:
  logger.log(level, f"{_PREFIXES[level]}{msg}", extra={"markup": True})


def log_info(msg: str) -> None:
  """
  Logs an informational message.

  Args:
      msg (str): The message content. May include rich markup like [path].
  """
  _log(logging.INFO, msg)


def log_success(msg: str) -> None:
  _log(SUCCESS_LEVEL_NUM, msg)


def log_warning(msg: str) -> None:
  _log(logging.WARNING, msg)


def log_error(msg: str) -> None:
  _log(logging.ERROR, msg)
