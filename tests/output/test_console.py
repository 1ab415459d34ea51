"""Tests for the Rich console factory and theme."""

from io import StringIO

from rich.text import Text

from layered_crate.output.console import (
    LC_THEME,
    create_console,
    get_output,
    style_for_status,
)


class TestCreateConsole:
    def test_renders_to_buffer(self) -> None:
        console = create_console()
        console.print("hello")
        assert get_output(console) == "hello\n"

    def test_no_ansi_when_not_a_terminal(self) -> None:
        console = create_console()
        console.print(Text("FAIL", style="lc.fail"))
        assert "\x1b[" not in get_output(console)

    def test_default_width(self) -> None:
        assert create_console().width == 120
        assert create_console(width=60).width == 60

    def test_explicit_file(self) -> None:
        buffer = StringIO()
        console = create_console(file=buffer)
        console.print("x")
        assert buffer.getvalue() == "x\n"

    def test_theme_styles_resolve(self) -> None:
        console = create_console()
        for name in LC_THEME.styles:
            console.get_style(name)


class TestStyleForStatus:
    def test_known_statuses(self) -> None:
        assert style_for_status("pass") == "lc.pass"
        assert style_for_status("pass_with_warning") == "lc.pass_warn"
        assert style_for_status("fail") == "lc.fail"

    def test_unknown_status(self) -> None:
        assert style_for_status("skipped") == ""
