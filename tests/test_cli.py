"""
CLI tests — every command goes through main(argv) against a temp store.
"""

import builtins
import json

import pytest

from movsim.cli import main, parse_address


@pytest.fixture
def run_cli(tmp_path):
    store = str(tmp_path / "programs")

    def _run(*argv):
        return main(["--store", store, *argv])
    return _run


class TestParseAddress:
    def test_register_names(self):
        assert parse_address("A") == 2
        assert parse_address("pc") == 1
        assert parse_address("IN") == 12

    def test_numeric(self):
        assert parse_address("53") == 53
        assert parse_address("@07") == 7

    def test_garbage(self):
        with pytest.raises(ValueError):
            parse_address("xyz")


class TestCommands:
    def test_no_command_prints_help(self, capsys):
        assert main([]) == 0
        assert "usage" in capsys.readouterr().out

    def test_show(self, run_cli, capsys):
        assert run_cli("show") == 0
        out = capsys.readouterr().out
        assert "Registers" in out
        assert "ROM" in out
        assert "PC=50" in out

    def test_poke_then_run(self, run_cli, capsys):
        """State persists between invocations through the default slot."""
        assert run_cli("poke", "A", "42") == 0
        assert run_cli("poke", "B", "10") == 0
        assert run_cli("run") == 0
        out = capsys.readouterr().out
        assert "stopped: HALT" in out
        assert "OUT: 0010 0042" in out

    def test_step(self, run_cli, capsys):
        assert run_cli("step", "-n", "2") == 0
        assert "PC=52" in capsys.readouterr().out
        assert run_cli("step") == 0
        assert "PC=53" in capsys.readouterr().out

    def test_run_with_breakpoint(self, run_cli, capsys):
        assert run_cli("run", "--break", "53") == 0
        out = capsys.readouterr().out
        assert "stopped: BREAK" in out
        assert "PC=53" in out

    def test_run_step_limit(self, run_cli, capsys):
        assert run_cli("run", "--max-steps", "2") == 0
        assert "stopped: LIMIT" in capsys.readouterr().out

    def test_input(self, run_cli, capsys):
        assert run_cli("input", "7") == 0
        assert "IN = 0007" in capsys.readouterr().out

    def test_disasm(self, run_cli, capsys):
        assert run_cli("disasm") == 0
        out = capsys.readouterr().out
        assert "50: 0209  MOV A -> TMP" in out
        assert "55: 0001  JMP HALT" in out

    def test_reset(self, run_cli, capsys):
        run_cli("step", "-n", "3")
        assert run_cli("reset") == 0
        assert "PC=50" in capsys.readouterr().out

    def test_clear_and_reset_program(self, run_cli, capsys):
        assert run_cli("clear") == 0
        assert "before_clear_" in capsys.readouterr().out
        run_cli("disasm")
        assert "50: 0000  HALT  (..99)" in capsys.readouterr().out
        assert run_cli("reset", "--program") == 0
        run_cli("disasm")
        assert "50: 0209" in capsys.readouterr().out

    def test_save_list_load_delete(self, run_cli, capsys):
        assert run_cli("poke", "A", "5") == 0
        assert run_cli("save", "five") == 0
        assert run_cli("poke", "A", "6") == 0
        assert run_cli("list") == 0
        assert "five" in capsys.readouterr().out
        assert run_cli("load", "five") == 0
        assert "A=0005" in capsys.readouterr().out
        assert run_cli("delete", "five") == 0
        capsys.readouterr()
        run_cli("list")
        assert "five" not in capsys.readouterr().out


class TestErrors:
    def test_bad_address(self, run_cli, capsys):
        assert run_cli("poke", "100", "1") == 1
        assert "Error" in capsys.readouterr().err

    def test_bad_value(self, run_cli, capsys):
        assert run_cli("poke", "20", "10000") == 1
        assert "Error" in capsys.readouterr().err

    def test_pc_out_of_range(self, run_cli):
        assert run_cli("poke", "PC", "150") == 1

    def test_load_missing(self, run_cli, capsys):
        assert run_cli("load", "nope") == 1
        assert "no saved program" in capsys.readouterr().err

    def test_bad_program_name(self, run_cli):
        assert run_cli("save", "../escape") == 1

    def test_bad_saved_state_does_not_block_commands(self, tmp_path, capsys):
        """A saved image with PC out of range is dropped; commands still work."""
        store = tmp_path / "programs"
        store.mkdir()
        cells = [0] * 100
        cells[1] = 150
        (store / "current.json").write_text(json.dumps({"cells": cells}), encoding="utf-8")
        assert main(["--store", str(store), "reset"]) == 0
        assert "PC=50" in capsys.readouterr().out


class TestRepl:
    def _feed(self, monkeypatch, lines):
        it = iter(lines)

        def fake_input(prompt=""):
            try:
                return next(it)
            except StopIteration:
                raise EOFError
        monkeypatch.setattr(builtins, "input", fake_input)

    def test_session(self, run_cli, monkeypatch, capsys):
        self._feed(monkeypatch, [
            "poke A 42", "poke B 10", "break 53", "run",
            "step", "back", "bogus", "poke", "quit",
        ])
        assert run_cli("repl") == 0
        out = capsys.readouterr().out
        assert "breakpoint @53 set" in out
        assert "stopped: BREAK" in out
        assert "OUT: 0010" in out
        assert "unknown command: bogus" in out
        assert "missing argument" in out

    def test_eof_exits(self, run_cli, monkeypatch):
        self._feed(monkeypatch, [])
        assert run_cli("repl") == 0

    def test_bad_edit_reported(self, run_cli, monkeypatch, capsys):
        self._feed(monkeypatch, ["poke PC 150", "in abc"])
        assert run_cli("repl") == 0
        out = capsys.readouterr().out
        assert "error:" in out
        assert "bad argument" in out
