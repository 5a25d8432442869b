"""
Grammar Extension for `mixin` declarations and `with` application lists.

LibCST parses ordinary Python only, so the extension works on the token stream
produced by `tokenize`. Every recognized construct is rewritten in place into a
sentinel form that LibCST accepts, and which the `MixinCollector` later turns
into `MixinDefinition` / `MixinApplication` nodes:

===================================  ================================================================
Extended syntax                      Sentinel form
===================================  ================================================================
``mixin N:``                         ``class N(__mixin_decl__()):``
``mixin N extends E:``               ``class N(__mixin_decl__(extends=E)):``
``T = mixin extends E:``             ``class __mixin_expr__(__mixin_decl__(bind=T, extends=E)):``
``class C(B with M1, M2, kw=v):``    ``class C(__mixin_with__(B, M1, M2), kw=v):``
===================================  ================================================================

Rewrites never add or remove newlines, so line numbers reported by LibCST match
the original source. `mixin` is a soft keyword; `with` keeps its statement
meaning and is otherwise only legal at the top level of a class base list.
"""

import io
import keyword
import tokenize
from dataclasses import dataclass
from typing import List, Optional, Set, Tuple

import libcst as cst

from mixin_desugar.errors import MixinSyntaxError, SourcePosition
from mixin_desugar.runtime import LAYER_CLASS_NAME

DECL_SENTINEL = "__mixin_decl__"
WITH_SENTINEL = "__mixin_with__"
EXPR_CLASS = "__mixin_expr__"
SUPERCLASS_PARAM = "__mixin_superclass__"
ANONYMOUS_PREFIX = "_anonymous_mixin_"
RESERVED_NAMES = frozenset({DECL_SENTINEL, WITH_SENTINEL, EXPR_CLASS, LAYER_CLASS_NAME, SUPERCLASS_PARAM})

_SKIPPED = {
  tokenize.NL,
  tokenize.COMMENT,
  tokenize.INDENT,
  tokenize.DEDENT,
  tokenize.ENCODING,
}
_OPENERS = {"(", "[", "{"}
_CLOSERS = {")", "]", "}"}

Point = Tuple[int, int]


@dataclass
class _Edit:
  start: Point
  end: Point
  text: str


def _pos(tok: tokenize.TokenInfo) -> SourcePosition:
  return SourcePosition(tok.start[0], tok.start[1])


def _is_op(tok: tokenize.TokenInfo, text: str) -> bool:
  return tok.type == tokenize.OP and tok.string == text


def _is_name(tok: tokenize.TokenInfo, text: Optional[str] = None) -> bool:
  return tok.type == tokenize.NAME and (text is None or tok.string == text)


def _is_anonymous_helper(name: str) -> bool:
  return name.startswith(ANONYMOUS_PREFIX) and name[len(ANONYMOUS_PREFIX) :].isdigit()


def _joined(prev_end: Point, start: Point) -> Point:
  """Returns `prev_end` if `start` is on the same line, else `start`. Keeps edits from eating newlines."""
  return prev_end if prev_end[0] == start[0] else start


class MixinGrammar:
  """
  Token-level recognizer for the mixin grammar additions.

  Usage::

      rewritten = MixinGrammar(source).rewrite()
      module = libcst.parse_module(rewritten)
  """

  def __init__(self, source: str):
    self.source = source
    self._lines = io.StringIO(source).readlines()
    self._offsets = self._line_offsets(self._lines)
    self._tokens: List[tokenize.TokenInfo] = []
    self._edits: List[_Edit] = []
    self._allowed_with: Set[Point] = set()

  @staticmethod
  def _line_offsets(lines: List[str]) -> List[int]:
    offsets = [0]
    for line in lines:
      offsets.append(offsets[-1] + len(line))
    return offsets

  # --- Tokenization ---

  def _tokenize(self) -> List[tokenize.TokenInfo]:
    try:
      return list(tokenize.generate_tokens(io.StringIO(self.source).readline))
    except tokenize.TokenError as e:
      msg, (line, col) = e.args
      raise MixinSyntaxError(f"could not tokenize source: {msg}", SourcePosition(line, col)) from e
    except SyntaxError as e:
      raise MixinSyntaxError(f"could not tokenize source: {e.msg}", SourcePosition(e.lineno or 0, e.offset or 0)) from e

  def _logical_lines(self) -> List[Tuple[List[int], int]]:
    """
    Groups significant tokens into logical lines.

    Returns:
        List of (token indexes, index of the terminating NEWLINE/ENDMARKER token).
    """
    lines = []
    current: List[int] = []
    for idx, tok in enumerate(self._tokens):
      if tok.type in _SKIPPED:
        continue
      if tok.type in (tokenize.NEWLINE, tokenize.ENDMARKER):
        if current:
          lines.append((current, idx))
        current = []
        continue
      current.append(idx)
    return lines

  # --- Public API ---

  def rewrite(self) -> str:
    """
    Rewrites extended syntax into sentinel Python.

    Returns:
        str: Source accepted by `libcst.parse_module`.

    Raises:
        MixinSyntaxError: On malformed mixin or `with` grammar.
    """
    self._tokens = self._tokenize()
    self._edits = []
    self._allowed_with = set()

    for indexes, terminator in self._logical_lines():
      toks = [self._tokens[i] for i in indexes]
      self._check_reserved(toks)
      self._scan_statement(toks, terminator)
      self._check_stray_with(toks)

    return self._apply_edits()

  # --- Statement Recognition ---

  def _check_reserved(self, toks: List[tokenize.TokenInfo]) -> None:
    for tok in toks:
      if tok.type != tokenize.NAME:
        continue
      if tok.string in RESERVED_NAMES or _is_anonymous_helper(tok.string):
        raise MixinSyntaxError(f"'{tok.string}' is a reserved identifier", _pos(tok))

  def _scan_statement(self, toks: List[tokenize.TokenInfo], terminator: int) -> None:
    start = 1 if _is_name(toks[0], "async") and len(toks) > 1 else 0
    head = toks[start]

    if _is_name(head, "with"):
      self._allowed_with.add(head.start)
      return

    if _is_name(head, "class"):
      self._scan_class_header(toks, start)
      return

    if start == 0 and _is_name(head, "mixin") and len(toks) > 1:
      nxt = toks[1]
      if _is_op(nxt, ":"):
        raise MixinSyntaxError("a mixin declaration requires a name", _pos(head))
      if _is_name(nxt) and not keyword.iskeyword(nxt.string):
        self._scan_mixin_declaration(toks, terminator)
        return

    self._scan_mixin_expression(toks, terminator)

  def _find_header_colon(self, toks: List[tokenize.TokenInfo], begin: int, anchor: tokenize.TokenInfo) -> int:
    depth = 0
    for i in range(begin, len(toks)):
      tok = toks[i]
      if tok.type == tokenize.OP:
        if tok.string in _OPENERS:
          depth += 1
        elif tok.string in _CLOSERS:
          depth -= 1
        elif tok.string == ":" and depth == 0:
          return i
    raise MixinSyntaxError("mixin is missing its ':' and class body", _pos(anchor))

  def _require_body(self, toks: List[tokenize.TokenInfo], colon: int, terminator: int, anchor: tokenize.TokenInfo) -> None:
    if colon < len(toks) - 1:
      # Simple suite on the same line, e.g. `mixin M: pass`.
      return
    for tok in self._tokens[terminator + 1 :]:
      if tok.type in (tokenize.NL, tokenize.COMMENT):
        continue
      if tok.type == tokenize.INDENT:
        return
      break
    raise MixinSyntaxError("mixin is missing its class body", _pos(anchor))

  def _check_extends_operand(self, operand: List[tokenize.TokenInfo], anchor: tokenize.TokenInfo) -> None:
    if not operand:
      raise MixinSyntaxError("'extends' requires a mixin operand", _pos(anchor))
    depth = 0
    for tok in operand:
      if tok.type == tokenize.OP:
        if tok.string in _OPENERS:
          depth += 1
        elif tok.string in _CLOSERS:
          depth -= 1
        elif tok.string == "," and depth == 0:
          raise MixinSyntaxError("a mixin can extend only one mixin", _pos(tok))
      elif _is_name(tok, "with"):
        raise MixinSyntaxError("'with' is not allowed in a mixin's extends clause", _pos(tok))

  def _scan_mixin_declaration(self, toks: List[tokenize.TokenInfo], terminator: int) -> None:
    kw, name = toks[0], toks[1]
    after = toks[2] if len(toks) > 2 else None

    if after is None:
      raise MixinSyntaxError("mixin is missing its ':' and class body", _pos(kw))

    if _is_name(name, "extends") and not _is_op(after, ":"):
      raise MixinSyntaxError("a mixin declaration requires a name", _pos(kw))

    self._edits.append(_Edit(kw.start, kw.end, "class"))

    if _is_name(after, "extends"):
      colon = self._find_header_colon(toks, 3, kw)
      self._check_extends_operand(toks[3:colon], after)
      self._require_body(toks, colon, terminator, kw)
      self._edits.append(_Edit(_joined(name.end, after.start), _joined(after.end, toks[3].start), f"({DECL_SENTINEL}(extends="))
      self._edits.append(_Edit(toks[colon].start, toks[colon].start, "))"))
    elif _is_op(after, ":"):
      self._require_body(toks, 2, terminator, kw)
      self._edits.append(_Edit(name.end, name.end, f"({DECL_SENTINEL}())"))
    else:
      raise MixinSyntaxError(f"expected ':' or 'extends' after mixin name, found '{after.string}'", _pos(after))

  def _scan_mixin_expression(self, toks: List[tokenize.TokenInfo], terminator: int) -> None:
    depth = 0
    assigns: List[int] = []
    for i, tok in enumerate(toks):
      if tok.type == tokenize.OP:
        if tok.string in _OPENERS:
          depth += 1
        elif tok.string in _CLOSERS:
          depth -= 1
        elif tok.string == "=" and depth == 0:
          assigns.append(i)
        continue

      if not (_is_name(tok, "mixin") and depth == 0 and i > 0 and _is_op(toks[i - 1], "=")):
        continue
      nxt = toks[i + 1] if i + 1 < len(toks) else None
      if nxt is None or not (_is_op(nxt, ":") or _is_name(nxt, "extends")):
        continue

      if len(assigns) != 1:
        raise MixinSyntaxError("a mixin expression must be bound to a single assignment target", _pos(tok))
      target_toks = toks[: i - 1]
      self._check_target(target_toks, tok)
      self._rewrite_expression(toks, i, terminator)
      return

  def _check_target(self, target: List[tokenize.TokenInfo], anchor: tokenize.TokenInfo) -> None:
    depth = 0
    for tok in target:
      if tok.type != tokenize.OP:
        continue
      if tok.string in _OPENERS:
        depth += 1
      elif tok.string in _CLOSERS:
        depth -= 1
      elif tok.string in (":", ",") and depth == 0:
        raise MixinSyntaxError("a mixin expression must be bound to a single, unannotated target", _pos(anchor))

  def _rewrite_expression(self, toks: List[tokenize.TokenInfo], kw_idx: int, terminator: int) -> None:
    kw = toks[kw_idx]
    first = toks[0]
    target_src = self._slice(first.start, toks[kw_idx - 1].start).rstrip()
    nxt = toks[kw_idx + 1]

    self._edits.append(_Edit(first.start, kw.end, f"class {EXPR_CLASS}({DECL_SENTINEL}(bind={target_src}"))

    if _is_name(nxt, "extends"):
      colon = self._find_header_colon(toks, kw_idx + 2, kw)
      self._check_extends_operand(toks[kw_idx + 2 : colon], nxt)
      self._edits.append(_Edit(_joined(kw.end, nxt.start), _joined(nxt.end, toks[kw_idx + 2].start), ", extends="))
    else:
      colon = kw_idx + 1

    self._require_body(toks, colon, terminator, kw)
    self._edits.append(_Edit(toks[colon].start, toks[colon].start, "))"))

  # --- Class Headers ---

  def _scan_class_header(self, toks: List[tokenize.TokenInfo], start: int) -> None:
    open_idx = start + 2
    if open_idx < len(toks) and _is_op(toks[open_idx], "["):
      open_idx = self._skip_group(toks, open_idx) + 1
    if open_idx >= len(toks) or not _is_op(toks[open_idx], "("):
      return

    depth = 0
    close_idx = None
    withs: List[int] = []
    for i in range(open_idx, len(toks)):
      tok = toks[i]
      if tok.type == tokenize.OP and tok.string in _OPENERS:
        depth += 1
      elif tok.type == tokenize.OP and tok.string in _CLOSERS:
        depth -= 1
        if depth == 0:
          close_idx = i
          break
      elif _is_name(tok, "with") and depth == 1:
        withs.append(i)

    if close_idx is None or not withs:
      return
    if len(withs) > 1:
      raise MixinSyntaxError("a base list may contain only one 'with' application", _pos(toks[withs[1]]))

    with_idx = withs[0]
    base = toks[open_idx + 1 : with_idx]
    if not base:
      raise MixinSyntaxError("'with' requires a superclass expression before it", _pos(toks[with_idx]))
    if len(self._split_items(base)) != 1:
      raise MixinSyntaxError("a 'with' application takes exactly one superclass", _pos(toks[with_idx]))

    mixins: List[List[tokenize.TokenInfo]] = []
    for item in self._split_items(toks[with_idx + 1 : close_idx]):
      if not item:
        break
      if len(item) > 1 and _is_name(item[0]) and _is_op(item[1], "="):
        break
      if _is_op(item[0], "*") or _is_op(item[0], "**"):
        raise MixinSyntaxError("unpacking is not allowed in a mixin list", _pos(item[0]))
      mixins.append(item)

    if not mixins:
      raise MixinSyntaxError("'with' requires at least one mixin", _pos(toks[with_idx]))

    with_tok = toks[with_idx]
    self._allowed_with.add(with_tok.start)
    self._edits.append(_Edit(base[0].start, base[0].start, f"{WITH_SENTINEL}("))
    self._edits.append(_Edit(_joined(base[-1].end, with_tok.start), with_tok.end, ","))
    last = mixins[-1][-1]
    self._edits.append(_Edit(last.end, last.end, ")"))

  @staticmethod
  def _skip_group(toks: List[tokenize.TokenInfo], open_idx: int) -> int:
    """Returns the index of the bracket closing the one at `open_idx`."""
    depth = 0
    for i in range(open_idx, len(toks)):
      tok = toks[i]
      if tok.type != tokenize.OP:
        continue
      if tok.string in _OPENERS:
        depth += 1
      elif tok.string in _CLOSERS:
        depth -= 1
        if depth == 0:
          return i
    return len(toks)

  @staticmethod
  def _split_items(toks: List[tokenize.TokenInfo]) -> List[List[tokenize.TokenInfo]]:
    """Splits a token run on top-level commas. A trailing comma yields an empty last item."""
    items: List[List[tokenize.TokenInfo]] = [[]]
    depth = 0
    for tok in toks:
      if tok.type == tokenize.OP:
        if tok.string in _OPENERS:
          depth += 1
        elif tok.string in _CLOSERS:
          depth -= 1
        elif tok.string == "," and depth == 0:
          items.append([])
          continue
      items[-1].append(tok)
    if items == [[]]:
      return []
    return items

  def _check_stray_with(self, toks: List[tokenize.TokenInfo]) -> None:
    for tok in toks:
      if _is_name(tok, "with") and tok.start not in self._allowed_with:
        raise MixinSyntaxError("'with' is only allowed in a class's base list", _pos(tok))

  # --- Output ---

  def _offset(self, point: Point) -> int:
    row, col = point
    if row - 1 >= len(self._offsets) - 1:
      return self._offsets[-1] + col
    return self._offsets[row - 1] + col

  def _slice(self, start: Point, end: Point) -> str:
    return self.source[self._offset(start) : self._offset(end)]

  def _apply_edits(self) -> str:
    if not self._edits:
      return self.source
    text = self.source
    # Insertions at the same point keep their recording order.
    ordered = sorted(enumerate(self._edits), key=lambda pair: (self._offset(pair[1].start), pair[0]), reverse=True)
    for _, edit in ordered:
      lo, hi = self._offset(edit.start), self._offset(edit.end)
      text = text[:lo] + edit.text + text[hi:]
    return text


def parse_extended(source: str) -> cst.Module:
  """
  Parses source that may use the mixin grammar into a sentinel LibCST module.

  Args:
      source: Python source, optionally using `mixin` / `with` extensions.

  Returns:
      cst.Module: Tree in sentinel form, consumable by `MixinCollector`.

  Raises:
      MixinSyntaxError: On malformed mixin grammar or invalid Python.
  """
  rewritten = MixinGrammar(source).rewrite()
  try:
    return cst.parse_module(rewritten)
  except cst.ParserSyntaxError as e:
    raise MixinSyntaxError(e.message, SourcePosition(e.raw_line, e.raw_column)) from e
