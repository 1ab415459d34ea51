"""Rust entry-file reader — top-level ``mod`` items and their source files.

This is not a Rust parser.  A small tokenizer understands enough of the
lexical grammar (comments, doc comments, strings, raw strings, chars and
lifetimes, delimiter groups) to find the items of the crate entry file
and split them at item boundaries.  Only module declarations, ``extern
crate`` items, and inner attributes are interpreted; everything else is
carried through as text.

Modules produced by macros are not seen.
"""

from __future__ import annotations

import logging
from dataclasses import dataclass, field
from enum import StrEnum
from pathlib import Path

from layered_crate.domain.errors import ResolutionError, SourceSyntaxError

logger = logging.getLogger(__name__)

_OPENERS = {"(": ")", "[": "]", "{": "}"}
_CLOSERS = frozenset(_OPENERS.values())
_RAW_PREFIXES = frozenset({"r", "br", "cr"})
_ESCAPES = {"n": "\n", "t": "\t", "r": "\r", "0": "\0", "\\": "\\", '"': '"', "'": "'"}


# ---------------------------------------------------------------------------
# Tokens
# ---------------------------------------------------------------------------


class TokenKind(StrEnum):
    IDENT = "ident"
    LIFETIME = "lifetime"
    LITERAL = "literal"
    PUNCT = "punct"
    OPEN = "open"
    CLOSE = "close"
    INNER_DOC = "inner_doc"
    OUTER_DOC = "outer_doc"


@dataclass(frozen=True, slots=True)
class Token:
    kind: TokenKind
    text: str
    start: int
    end: int


def _is_ident_start(ch: str) -> bool:
    return ch.isalpha() or ch == "_"


def _is_ident_char(ch: str) -> bool:
    return ch.isalnum() or ch == "_"


def tokenize(source: str) -> list[Token]:
    """Split *source* into tokens, dropping whitespace and plain comments.

    Doc comments (``///``, ``//!``, ``/** */``, ``/*! */``) are kept since
    they are attributes.
    """
    tokens: list[Token] = []
    n = len(source)
    pos = 0
    while pos < n:
        ch = source[pos]
        if ch.isspace():
            pos += 1
            continue

        if source.startswith("//", pos):
            end = source.find("\n", pos)
            end = n if end == -1 else end
            text = source[pos:end]
            if text.startswith("//!"):
                tokens.append(Token(TokenKind.INNER_DOC, text, pos, end))
            elif text.startswith("///") and not text.startswith("////"):
                tokens.append(Token(TokenKind.OUTER_DOC, text, pos, end))
            pos = end
            continue

        if source.startswith("/*", pos):
            end = _block_comment_end(source, pos)
            text = source[pos:end]
            if text.startswith("/*!"):
                tokens.append(Token(TokenKind.INNER_DOC, text, pos, end))
            elif text.startswith("/**") and not text.startswith(("/***", "/**/")):
                tokens.append(Token(TokenKind.OUTER_DOC, text, pos, end))
            pos = end
            continue

        if ch == '"':
            end = _quoted_end(source, pos + 1, '"')
            tokens.append(Token(TokenKind.LITERAL, source[pos:end], pos, end))
            pos = end
            continue

        if ch == "'":
            kind, end = _quote_or_lifetime(source, pos)
            tokens.append(Token(kind, source[pos:end], pos, end))
            pos = end
            continue

        if ch.isdigit():
            end = pos + 1
            while end < n and (
                _is_ident_char(source[end])
                or (source[end] == "." and end + 1 < n and source[end + 1].isdigit())
            ):
                end += 1
            tokens.append(Token(TokenKind.LITERAL, source[pos:end], pos, end))
            pos = end
            continue

        if _is_ident_start(ch):
            token = _ident_or_prefixed_literal(source, pos)
            tokens.append(token)
            pos = token.end
            continue

        if ch in _OPENERS:
            tokens.append(Token(TokenKind.OPEN, ch, pos, pos + 1))
        elif ch in _CLOSERS:
            tokens.append(Token(TokenKind.CLOSE, ch, pos, pos + 1))
        else:
            tokens.append(Token(TokenKind.PUNCT, ch, pos, pos + 1))
        pos += 1
    return tokens


def _block_comment_end(source: str, pos: int) -> int:
    depth = 0
    i = pos
    n = len(source)
    while i < n:
        if source.startswith("/*", i):
            depth += 1
            i += 2
        elif source.startswith("*/", i):
            depth -= 1
            i += 2
            if depth == 0:
                return i
        else:
            i += 1
    msg = f"unterminated block comment at offset {pos}"
    raise SourceSyntaxError(msg)


def _quoted_end(source: str, pos: int, quote: str) -> int:
    """Index just past the closing *quote*, honoring backslash escapes."""
    i = pos
    n = len(source)
    while i < n:
        ch = source[i]
        if ch == "\\":
            i += 2
            continue
        if ch == quote:
            return i + 1
        i += 1
    msg = f"unterminated literal at offset {pos - 1}"
    raise SourceSyntaxError(msg)


def _raw_string_end(source: str, pos: int) -> int:
    """*pos* points at the ``#``s or ``"`` following an ``r`` prefix."""
    hashes = 0
    while pos + hashes < len(source) and source[pos + hashes] == "#":
        hashes += 1
    open_quote = pos + hashes
    if open_quote >= len(source) or source[open_quote] != '"':
        msg = f"malformed raw string at offset {pos}"
        raise SourceSyntaxError(msg)
    terminator = '"' + "#" * hashes
    close = source.find(terminator, open_quote + 1)
    if close == -1:
        msg = f"unterminated raw string at offset {pos}"
        raise SourceSyntaxError(msg)
    return close + len(terminator)


def _quote_or_lifetime(source: str, pos: int) -> tuple[TokenKind, int]:
    n = len(source)
    if pos + 1 < n and source[pos + 1] == "\\":
        return TokenKind.LITERAL, _quoted_end(source, pos + 1, "'")
    if pos + 2 < n and source[pos + 2] == "'":
        return TokenKind.LITERAL, pos + 3
    end = pos + 1
    while end < n and _is_ident_char(source[end]):
        end += 1
    return TokenKind.LIFETIME, end


def _ident_or_prefixed_literal(source: str, pos: int) -> Token:
    n = len(source)
    end = pos + 1
    while end < n and _is_ident_char(source[end]):
        end += 1
    word = source[pos:end]
    nxt = source[end] if end < n else ""

    if word == "r" and nxt == "#" and end + 1 < n and _is_ident_start(source[end + 1]):
        raw_end = end + 2
        while raw_end < n and _is_ident_char(source[raw_end]):
            raw_end += 1
        return Token(TokenKind.IDENT, source[pos:raw_end], pos, raw_end)
    if word in _RAW_PREFIXES and nxt in ('"', "#"):
        lit_end = _raw_string_end(source, end)
        return Token(TokenKind.LITERAL, source[pos:lit_end], pos, lit_end)
    if word in ("b", "c") and nxt == '"':
        lit_end = _quoted_end(source, end + 1, '"')
        return Token(TokenKind.LITERAL, source[pos:lit_end], pos, lit_end)
    if word == "b" and nxt == "'":
        _, lit_end = _quote_or_lifetime(source, end)
        return Token(TokenKind.LITERAL, source[pos:lit_end], pos, lit_end)
    return Token(TokenKind.IDENT, word, pos, end)


def match_groups(tokens: list[Token]) -> dict[int, int]:
    """Map the index of every opening delimiter to its closing delimiter."""
    matches: dict[int, int] = {}
    stack: list[int] = []
    for i, tok in enumerate(tokens):
        if tok.kind is TokenKind.OPEN:
            stack.append(i)
        elif tok.kind is TokenKind.CLOSE:
            if not stack or _OPENERS[tokens[stack[-1]].text] != tok.text:
                msg = f"unbalanced `{tok.text}` at offset {tok.start}"
                raise SourceSyntaxError(msg)
            matches[stack.pop()] = i
    if stack:
        tok = tokens[stack[-1]]
        msg = f"unclosed `{tok.text}` at offset {tok.start}"
        raise SourceSyntaxError(msg)
    return matches


def rust_string_literal(value: str) -> str:
    """Quote *value* as a Rust string literal."""
    escaped = value.replace("\\", "\\\\").replace('"', '\\"')
    return f'"{escaped}"'


def string_literal_value(text: str) -> str:
    """Value of a (raw) string literal token."""
    if text.startswith("r"):
        body = text[1:].strip("#")
        return body[1:-1]
    out: list[str] = []
    i = 1
    while i < len(text) - 1:
        ch = text[i]
        if ch == "\\" and i + 1 < len(text) - 1:
            out.append(_ESCAPES.get(text[i + 1], text[i + 1]))
            i += 2
            continue
        out.append(ch)
        i += 1
    return "".join(out)


# ---------------------------------------------------------------------------
# Items
# ---------------------------------------------------------------------------


@dataclass(frozen=True)
class ModuleDecl:
    """A ``mod`` item of the entry file.

    Attributes:
        name: Module identifier as written (raw identifiers keep ``r#``).
        path: Resolved absolute source file; None for inline modules.
        cfg: ``#[cfg(...)]`` attributes attached to the declaration.
        start: Offset of the first attribute or token of the item.
        end: Offset just past the item.
    """

    name: str
    path: Path | None
    cfg: tuple[str, ...] = ()
    start: int = 0
    end: int = 0

    @property
    def is_inline(self) -> bool:
        return self.path is None


@dataclass(frozen=True, order=True)
class _Edit:
    start: int
    end: int
    text: str


@dataclass
class _Item:
    attrs: list[tuple[int, int]]
    first: int
    body: int
    end: int


@dataclass
class _Scan:
    inner_attrs: list[tuple[int, int]] = field(default_factory=list)
    items: list[_Item] = field(default_factory=list)


def _is_punct(tok: Token, text: str) -> bool:
    return tok.kind is TokenKind.PUNCT and tok.text == text


def _is_ident(tok: Token, text: str) -> bool:
    return tok.kind is TokenKind.IDENT and tok.text == text


def _item_end(tokens: list[Token], matches: dict[int, int], i: int, hi: int) -> int:
    """Token index just past the item starting at *i*."""
    j = i
    while j < hi:
        tok = tokens[j]
        if tok.kind is TokenKind.OPEN:
            close = matches[j]
            if tok.text == "{":
                if close + 1 < hi and _is_punct(tokens[close + 1], ";"):
                    return close + 2
                return close + 1
            j = close + 1
            continue
        if _is_punct(tok, ";"):
            return j + 1
        j += 1
    return hi


def _scan_items(tokens: list[Token], matches: dict[int, int], lo: int, hi: int) -> _Scan:
    scan = _Scan()
    attrs: list[tuple[int, int]] = []
    first: int | None = None
    i = lo
    while i < hi:
        tok = tokens[i]
        if tok.kind is TokenKind.INNER_DOC:
            scan.inner_attrs.append((i, i + 1))
            i += 1
            continue
        if tok.kind is TokenKind.OUTER_DOC:
            attrs.append((i, i + 1))
            first = i if first is None else first
            i += 1
            continue
        if _is_punct(tok, "#"):
            j = i + 1
            inner = j < hi and _is_punct(tokens[j], "!")
            if inner:
                j += 1
            if j < hi and tokens[j].kind is TokenKind.OPEN and tokens[j].text == "[":
                end = matches[j] + 1
                if inner:
                    scan.inner_attrs.append((i, end))
                else:
                    attrs.append((i, end))
                    first = i if first is None else first
                i = end
                continue
        if _is_punct(tok, ";") and not attrs:
            i += 1
            continue
        end = _item_end(tokens, matches, i, hi)
        scan.items.append(_Item(attrs=attrs, first=i if first is None else first, body=i, end=end))
        attrs = []
        first = None
        i = end
    return scan


# ---------------------------------------------------------------------------
# Entry file
# ---------------------------------------------------------------------------


class EntryFile:
    """The crate's entry unit with every module resolved to an absolute file.

    Use :meth:`resolve` to construct.  Resolution records text edits that
    turn each module declaration into a public, path-annotated one;
    :meth:`rewritten` applies them.
    """

    def __init__(
        self,
        source: str,
        base_path: Path,
        *,
        modules: dict[str, ModuleDecl],
        inner_attributes: list[str],
        extern_crates: list[str],
        edits: list[_Edit],
    ) -> None:
        self.source = source
        self.base_path = base_path
        self.modules = modules
        self.inner_attributes = tuple(inner_attributes)
        self.extern_crates = tuple(extern_crates)
        self._edits = sorted(edits)

    @classmethod
    def resolve(cls, content: str, base_path: Path) -> EntryFile:
        """Parse *content* and resolve module files relative to *base_path*.

        Raises:
            SourceSyntaxError: the file cannot be tokenized.
            ResolutionError: a module's source file does not exist.
        """
        logger.debug("resolving entry file, base path: %s", base_path)
        tokens = tokenize(content)
        matches = match_groups(tokens)
        resolver = _Resolver(content, tokens, matches)
        scan = _scan_items(tokens, matches, 0, len(tokens))

        inner = [content[tokens[a].start : tokens[b - 1].end] for a, b in scan.inner_attrs]
        externs: list[str] = []
        modules: dict[str, ModuleDecl] = {}
        for item in scan.items:
            if resolver.is_extern_crate(item):
                externs.append(content[tokens[item.first].start : tokens[item.end - 1].end])
                continue
            decl = resolver.module(item, base_path, tag="crate", top_level=True)
            if decl is not None:
                modules[decl.name] = decl

        logger.debug("entry file modules: %s", sorted(modules))
        return cls(
            content,
            base_path,
            modules=modules,
            inner_attributes=inner,
            extern_crates=externs,
            edits=resolver.edits,
        )

    def all_modules(self) -> set[str]:
        """Names of all top-level modules."""
        return set(self.modules)

    def module_paths(self) -> dict[str, Path]:
        """``name -> absolute file`` for every non-inline top-level module."""
        return {name: decl.path for name, decl in self.modules.items() if decl.path is not None}

    def rewritten(self, start: int = 0, end: int | None = None) -> str:
        """Source text of ``[start, end)`` with the module edits applied."""
        stop = len(self.source) if end is None else end
        out: list[str] = []
        pos = start
        for edit in self._edits:
            if edit.start < start or edit.end > stop:
                continue
            out.append(self.source[pos : edit.start])
            out.append(edit.text)
            pos = edit.end
        out.append(self.source[pos:stop])
        return "".join(out)

    def module_declaration(self, name: str) -> str:
        """Rewritten text of the declaration of top-level module *name*."""
        decl = self.modules[name]
        return self.rewritten(decl.start, decl.end)


class _Resolver:
    """Walks module items, resolving files and recording edits."""

    def __init__(self, source: str, tokens: list[Token], matches: dict[int, int]) -> None:
        self._source = source
        self._tokens = tokens
        self._matches = matches
        self.edits: list[_Edit] = []

    def _text(self, lo: int, hi: int) -> str:
        return self._source[self._tokens[lo].start : self._tokens[hi - 1].end]

    def is_extern_crate(self, item: _Item) -> bool:
        toks = self._tokens
        j = self._skip_visibility(item.body, item.end)
        return j + 1 < item.end and _is_ident(toks[j], "extern") and _is_ident(toks[j + 1], "crate")

    def _skip_visibility(self, j: int, end: int) -> int:
        toks = self._tokens
        if j < end and _is_ident(toks[j], "pub"):
            j += 1
            if j < end and toks[j].kind is TokenKind.OPEN and toks[j].text == "(":
                j = self._matches[j] + 1
        return j

    def module(self, item: _Item, base_path: Path, *, tag: str, top_level: bool) -> ModuleDecl | None:
        toks = self._tokens
        kw = self._skip_visibility(item.body, item.end)
        if not (
            kw + 1 < item.end
            and _is_ident(toks[kw], "mod")
            and toks[kw + 1].kind is TokenKind.IDENT
        ):
            return None
        name = toks[kw + 1].text
        after = kw + 2
        start = toks[item.first].start
        end = toks[item.end - 1].end

        path_value: str | None = None
        kept_attrs: list[str] = []
        cfg: list[str] = []
        has_skip = False
        for lo, hi in item.attrs:
            attr = self._text(lo, hi)
            inner = toks[lo + 2] if hi - lo > 2 else None
            if inner is not None and _is_ident(inner, "path") and hi - lo == 6:
                path_value = string_literal_value(toks[lo + 4].text)
                continue
            if inner is not None and _is_ident(inner, "cfg"):
                cfg.append(attr)
            if "rustfmt::skip" in attr:
                has_skip = True
            kept_attrs.append(attr)

        if after < item.end and toks[after].kind is TokenKind.OPEN and toks[after].text == "{":
            logger.debug("module `%s` in %s is inline", name, tag)
            if top_level:
                if not has_skip:
                    self.edits.append(_Edit(start, start, "#[rustfmt::skip]\n"))
                vis_start = toks[item.body].start
                self.edits.append(_Edit(vis_start, toks[kw].start, "pub "))
            self._resolve_children(
                after + 1,
                self._matches[after],
                base_path / name.removeprefix("r#"),
                tag=f"{tag}::{name}",
            )
            return ModuleDecl(name=name, path=None, cfg=tuple(cfg), start=start, end=end)

        if path_value is not None:
            path = _resolve_existing(base_path / path_value)
            if path is None:
                msg = f"failed to resolve path `{path_value}` for module `{name}` in {tag}"
                raise ResolutionError(msg)
        else:
            path = _resolve_module_file(name, base_path, tag)
        logger.debug("module `%s` in %s -> %s", name, tag, path)

        if top_level:
            vis = "pub"
        else:
            vis = self._text(item.body, kw) if kw > item.body else ""
        lines = [*kept_attrs, f"#[path = {rust_string_literal(str(path))}]"]
        if not has_skip:
            lines.append("#[rustfmt::skip]")
        lines.append(f"{vis} mod {name};".lstrip())
        self.edits.append(_Edit(start, end, "\n".join(lines)))
        return ModuleDecl(name=name, path=path, cfg=tuple(cfg), start=start, end=end)

    def _resolve_children(self, lo: int, hi: int, base_path: Path, *, tag: str) -> None:
        scan = _scan_items(self._tokens, self._matches, lo, hi)
        for item in scan.items:
            self.module(item, base_path, tag=tag, top_level=False)


def _resolve_existing(path: Path) -> Path | None:
    if path.is_file():
        return path.resolve()
    return None


def _resolve_module_file(name: str, base_path: Path, tag: str) -> Path:
    """``<base>/<name>.rs`` or ``<base>/<name>/mod.rs``."""
    stem = name.removeprefix("r#")
    for candidate in (base_path / f"{stem}.rs", base_path / stem / "mod.rs"):
        resolved = _resolve_existing(candidate)
        if resolved is not None:
            return resolved
    msg = f"failed to resolve module `{name}` in {tag}: neither {stem}.rs nor {stem}/mod.rs exists under {base_path}"
    raise ResolutionError(msg)
