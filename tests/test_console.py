"""Tests for console output helpers and the verbosity toggle."""

from __future__ import annotations

from rsxcode.utils import console


class TestVerbosity:
    def test_default_level(self, monkeypatch):
        monkeypatch.delenv("RSXCODE_LOG", raising=False)
        assert console.enabled("info")
        assert not console.enabled("debug")

    def test_trace_enables_everything(self, monkeypatch):
        monkeypatch.setenv("RSXCODE_LOG", "TRACE")
        assert console.enabled("trace")

    def test_unknown_value_falls_back(self, monkeypatch):
        monkeypatch.setenv("RSXCODE_LOG", "loud")
        assert console.current_level() == console.LEVELS["info"]

    def test_errors_always_printed(self, monkeypatch, capsys):
        monkeypatch.setenv("RSXCODE_LOG", "error")
        console.print_info("hidden")
        console.print_error("shown")
        captured = capsys.readouterr()
        assert "hidden" not in captured.out
        assert "shown" in captured.err


class TestKeyErrorLines:
    def test_keyword_lines_with_context(self):
        stdout = "Compiling foo\nerror[E0425]: cannot find value `x`\n --> src/lib.rs:3:5\nwarning: unused\n"
        lines = console.extract_key_error_lines(stdout, "")
        assert lines[0] == "error[E0425]: cannot find value `x`"
        assert "--> src/lib.rs:3:5" in lines

    def test_falls_back_to_tail(self):
        stdout = "\n".join(f"line {i}" for i in range(30))
        lines = console.extract_key_error_lines(stdout, "", max_lines=5)
        assert lines == [f"line {i}" for i in range(25, 30)]

    def test_deduplicates(self):
        stdout = "error: boom\nerror: boom\n"
        assert console.extract_key_error_lines(stdout, "") == ["error: boom"]
