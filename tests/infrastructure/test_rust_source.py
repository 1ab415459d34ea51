"""Tests for the Rust entry-file reader."""

from __future__ import annotations

from pathlib import Path

import pytest

from layered_crate.domain.errors import ResolutionError, SourceSyntaxError
from layered_crate.infrastructure.rust_source import (
    EntryFile,
    TokenKind,
    match_groups,
    rust_string_literal,
    string_literal_value,
    tokenize,
)


def _kinds(source: str) -> list[tuple[TokenKind, str]]:
    return [(tok.kind, tok.text) for tok in tokenize(source)]


def _src(root: Path, files: dict[str, str]) -> Path:
    """Write *files* under ``root/src`` and return that directory."""
    src = root / "src"
    for rel, body in files.items():
        path = src / rel
        path.parent.mkdir(parents=True, exist_ok=True)
        path.write_text(body, encoding="utf-8")
    return src


# ── Tokenizer ─────────────────────────────────────────────────────────


class TestTokenize:
    def test_plain_comments_dropped(self) -> None:
        assert _kinds("// hi\nmod a; /* block /* nested */ */") == [
            (TokenKind.IDENT, "mod"),
            (TokenKind.IDENT, "a"),
            (TokenKind.PUNCT, ";"),
        ]

    def test_doc_comments_kept(self) -> None:
        kinds = [kind for kind, _ in _kinds("//! crate doc\n/// item doc\n//// not doc\nmod a;")]
        assert kinds[:2] == [TokenKind.INNER_DOC, TokenKind.OUTER_DOC]
        assert TokenKind.OUTER_DOC not in kinds[2:]

    def test_block_doc_comments(self) -> None:
        kinds = [kind for kind, _ in _kinds("/*! inner */ /** outer */ /**/ /*** not */")]
        assert kinds == [TokenKind.INNER_DOC, TokenKind.OUTER_DOC]

    def test_strings_hide_delimiters(self) -> None:
        tokens = tokenize('const S: &str = "mod x; { // not a comment";')
        literal = [tok for tok in tokens if tok.kind is TokenKind.LITERAL]
        assert literal[0].text == '"mod x; { // not a comment"'
        assert not any(tok.kind is TokenKind.OPEN for tok in tokens)

    def test_raw_strings(self) -> None:
        tokens = tokenize('r#"a "quoted" } string"# br"x" cr##"y"##')
        assert [tok.kind for tok in tokens] == [TokenKind.LITERAL] * 3

    def test_char_versus_lifetime(self) -> None:
        assert _kinds("'a' '\\n' 'b '\\'' fn f<'a>") == [
            (TokenKind.LITERAL, "'a'"),
            (TokenKind.LITERAL, "'\\n'"),
            (TokenKind.LIFETIME, "'b"),
            (TokenKind.LITERAL, "'\\''"),
            (TokenKind.IDENT, "fn"),
            (TokenKind.IDENT, "f"),
            (TokenKind.PUNCT, "<"),
            (TokenKind.LIFETIME, "'a"),
            (TokenKind.PUNCT, ">"),
        ]

    def test_byte_literals(self) -> None:
        assert [kind for kind, _ in _kinds("b'{' b\"}\"")] == [TokenKind.LITERAL, TokenKind.LITERAL]

    def test_raw_identifier(self) -> None:
        assert _kinds("mod r#type;")[1] == (TokenKind.IDENT, "r#type")

    def test_unterminated_string(self) -> None:
        with pytest.raises(SourceSyntaxError):
            tokenize('"never closed')

    def test_unterminated_block_comment(self) -> None:
        with pytest.raises(SourceSyntaxError):
            tokenize("/* open /* nested */")


class TestMatchGroups:
    def test_nested(self) -> None:
        tokens = tokenize("{ ( [ ] ) }")
        assert match_groups(tokens) == {0: 5, 1: 4, 2: 3}

    def test_unbalanced(self) -> None:
        with pytest.raises(SourceSyntaxError, match="unbalanced"):
            match_groups(tokenize("{ ) }"))

    def test_unclosed(self) -> None:
        with pytest.raises(SourceSyntaxError, match="unclosed"):
            match_groups(tokenize("fn f() {"))


class TestStringLiterals:
    def test_quote_and_back(self) -> None:
        assert rust_string_literal('C:\\dir\\"x"') == '"C:\\\\dir\\\\\\"x\\""'
        assert string_literal_value(rust_string_literal("/a/b c.rs")) == "/a/b c.rs"

    def test_raw_value(self) -> None:
        assert string_literal_value('r#"a\\b"#') == "a\\b"

    def test_escapes(self) -> None:
        assert string_literal_value('"a\\tb"') == "a\tb"


# ── EntryFile ─────────────────────────────────────────────────────────


class TestEntryFileResolve:
    def test_file_and_dir_modules(self, tmp_path: Path) -> None:
        src = _src(tmp_path, {"a.rs": "", "b/mod.rs": ""})
        entry = EntryFile.resolve("mod a;\npub(crate) mod b;\n", src)
        assert entry.all_modules() == {"a", "b"}
        assert entry.module_paths() == {
            "a": (src / "a.rs").resolve(),
            "b": (src / "b" / "mod.rs").resolve(),
        }

    def test_path_attribute(self, tmp_path: Path) -> None:
        src = _src(tmp_path, {"impls/real.rs": ""})
        entry = EntryFile.resolve('#[path = "impls/real.rs"]\nmod fake;\n', src)
        assert entry.module_paths()["fake"] == (src / "impls" / "real.rs").resolve()
        assert '"impls/real.rs"' not in entry.rewritten()

    def test_missing_file(self, tmp_path: Path) -> None:
        src = _src(tmp_path, {})
        with pytest.raises(ResolutionError, match="`ghost`"):
            EntryFile.resolve("mod ghost;\n", src)

    def test_missing_path_attribute_target(self, tmp_path: Path) -> None:
        src = _src(tmp_path, {})
        with pytest.raises(ResolutionError, match="nowhere.rs"):
            EntryFile.resolve('#[path = "nowhere.rs"]\nmod a;\n', src)

    def test_inner_attributes_and_extern_crates(self, tmp_path: Path) -> None:
        src = _src(tmp_path, {"a.rs": ""})
        entry = EntryFile.resolve(
            "//! Crate docs.\n#![no_std]\n#![allow(dead_code)]\nextern crate alloc;\n"
            "#[macro_use]\nextern crate log;\nmod a;\n",
            src,
        )
        assert entry.inner_attributes == ("//! Crate docs.", "#![no_std]", "#![allow(dead_code)]")
        assert entry.extern_crates == ("extern crate alloc;", "#[macro_use]\nextern crate log;")

    def test_non_module_items_ignored(self, tmp_path: Path) -> None:
        src = _src(tmp_path, {"a.rs": ""})
        entry = EntryFile.resolve(
            'pub use a::Thing;\nfn model() { let s = "mod fake;"; }\nmacro_rules! m { () => { mod x; } }\nmod a;\n',
            src,
        )
        assert entry.all_modules() == {"a"}

    def test_cfg_attributes_recorded(self, tmp_path: Path) -> None:
        src = _src(tmp_path, {"a.rs": ""})
        entry = EntryFile.resolve('#[cfg(feature = "x")]\n/// Docs.\nmod a;\n', src)
        assert entry.modules["a"].cfg == ('#[cfg(feature = "x")]',)

    def test_raw_identifier_module(self, tmp_path: Path) -> None:
        src = _src(tmp_path, {"type.rs": ""})
        entry = EntryFile.resolve("mod r#type;\n", src)
        assert entry.module_paths()["r#type"] == (src / "type.rs").resolve()


class TestEntryFileRewrite:
    def test_modules_made_public_and_pinned(self, tmp_path: Path) -> None:
        src = _src(tmp_path, {"a.rs": ""})
        entry = EntryFile.resolve("/// Docs.\nmod a;\nfn keep() {}\n", src)
        path = (src / "a.rs").resolve()
        assert entry.rewritten() == (
            f'/// Docs.\n#[path = "{path}"]\n#[rustfmt::skip]\npub mod a;\nfn keep() {{}}\n'
        )

    def test_existing_rustfmt_skip_not_duplicated(self, tmp_path: Path) -> None:
        src = _src(tmp_path, {"a.rs": ""})
        entry = EntryFile.resolve("#[rustfmt::skip]\nmod a;\n", src)
        assert entry.rewritten().count("rustfmt::skip") == 1

    def test_inline_module_children_pinned(self, tmp_path: Path) -> None:
        src = _src(tmp_path, {"outer/inner.rs": ""})
        entry = EntryFile.resolve("mod outer {\n    mod inner;\n    fn f() {}\n}\n", src)
        assert entry.modules["outer"].is_inline
        inner = (src / "outer" / "inner.rs").resolve()
        assert entry.rewritten() == (
            f'#[rustfmt::skip]\npub mod outer {{\n    #[path = "{inner}"]\n#[rustfmt::skip]\nmod inner;\n'
            "    fn f() {}\n}\n"
        )

    def test_module_declaration_slice(self, tmp_path: Path) -> None:
        src = _src(tmp_path, {"a.rs": "", "b.rs": ""})
        entry = EntryFile.resolve("mod a;\nmod b;\n", src)
        decl = entry.module_declaration("b")
        assert decl.endswith("pub mod b;")
        assert "mod a" not in decl

    def test_rewrite_is_deterministic(self, tmp_path: Path) -> None:
        src = _src(tmp_path, {"a.rs": "", "b.rs": ""})
        content = "mod b;\nmod a;\n"
        assert EntryFile.resolve(content, src).rewritten() == EntryFile.resolve(content, src).rewritten()
