"""Tests for chartrel.output.console module."""

from __future__ import annotations

import pytest

from chartrel.output.console import ConsoleProtocol, MockConsole, RichConsole, Style


class TestStyle:
    def test_str_conversion(self) -> None:
        assert str(Style.SUCCESS) == "success"
        assert str(Style.DIM) == "dim"

    def test_all_styles_exist(self) -> None:
        expected = {"DEFAULT", "SUCCESS", "ERROR", "WARNING", "INFO", "DIM", "HEADER"}
        assert {s.name for s in Style} == expected


class TestMockConsole:
    def test_print_captures_message(self) -> None:
        console = MockConsole()
        console.print("git ls-remote --heads origin", Style.DIM)
        assert console.outputs[0].message == "git ls-remote --heads origin"
        assert console.outputs[0].style == Style.DIM

    def test_level_prefixes(self) -> None:
        console = MockConsole()
        console.success("pushed")
        console.error("failed")
        console.warning("careful")
        console.info("note")

        assert console.messages == ["OK pushed", "error: failed", "warning: careful", "info: note"]
        assert console.has_error()
        assert console.has_warning()

    def test_find(self) -> None:
        console = MockConsole()
        console.info("nginx release 1.0.0 already exists")
        console.info("redis released")

        assert len(console.find("already exists")) == 1
        assert console.find("missing") == []

    def test_implements_protocol(self) -> None:
        console: ConsoleProtocol = MockConsole()
        console.header("release")


class TestRichConsole:
    def test_writes_to_stderr_without_markup(self, capsys: pytest.CaptureFixture[str]) -> None:
        console = RichConsole()
        console.info("chart [bold]nginx[/bold]")
        console.print("plain")

        captured = capsys.readouterr()
        assert captured.out == ""
        assert "info:" in captured.err
        assert "[bold]nginx[/bold]" in captured.err
        assert "plain" in captured.err
