#!/usr/bin/env python3
"""
movsim — Move-Only CPU Simulator CLI
====================================

One CLI for everything:
    movsim show     — Registers, RAM, ROM and the output log
    movsim step     — Execute one (or -n N) instructions
    movsim run      — Run until HALT / breakpoint / input / step limit
    movsim poke     — Write one memory cell
    movsim input    — Put a value on the IN port (@12)
    movsim reset    — Reset registers (and with --program, the ROM)
    movsim clear    — Back up the current program, then wipe it
    movsim disasm   — List the ROM as MOV instructions
    movsim save     — Save the current image under a name
    movsim load     — Load a saved image
    movsim list     — List saved images
    movsim delete   — Delete a saved image
    movsim repl     — Interactive debugger

State carries over between invocations: every change is autosaved to
the default slot in the store directory (~/.movsim/programs).

Examples:
    movsim poke A 42
    movsim step -n 3
    movsim run --break 53 --max-steps 500
    movsim save swap
    movsim repl
"""

import argparse
import logging
import sys
from typing import Iterable, List, Optional

from rich import box
from rich.console import Console
from rich.table import Table

from . import __version__
from .config import DEFAULT_STORE_DIR, RUN_INTERVAL_S
from .cpu.decoder import describe, disassemble
from .cpu.regs import (
    MEM_SIZE, NAME_TO_ADDRESS, RAM_START, REGISTER_NAMES, ROM_START, Registers,
)
from .emu import StopReason
from .errors import MovSimError
from .log_setup import setup_logging
from .session import Session, ViewState
from .storage import JsonFileStorage

log = logging.getLogger(__name__)


def parse_address(s: str) -> int:
    """Parse an address: register name (A, PC, TMP...), '@NN' or plain decimal."""
    s = s.strip()
    name = s.upper()
    if name in NAME_TO_ADDRESS:
        return NAME_TO_ADDRESS[name]
    if s.startswith('@'):
        s = s[1:]
    return int(s, 10)


def parse_value(s: str) -> int:
    return int(s.strip(), 10)


# ═════════════════════════════════════════════════════════════════════════════
# RENDERING
# ═════════════════════════════════════════════════════════════════════════════

def registers_table(view: ViewState) -> Table:
    mem = view.memory
    table = Table(title="Registers", box=box.SIMPLE, show_edge=False)
    table.add_column("Addr", justify="right")
    table.add_column("Name")
    table.add_column("Value", justify="right")
    table.add_column("")
    for addr, name in REGISTER_NAMES.items():
        marks = []
        if addr == view.pointers.read:
            marks.append("read")
        if addr == view.pointers.write:
            marks.append("write")
        table.add_row(f"{addr:02d}", name, f"{mem[addr]:04d}", " ".join(marks))
    return table


def memory_table(view: ViewState, title: str, start: int, end: int) -> Table:
    """Ten cells per row. PC is shown reversed, breakpoints in red."""
    mem = view.memory
    table = Table(title=title, box=box.SIMPLE, show_edge=False)
    table.add_column("", justify="right", style="dim")
    for col in range(10):
        table.add_column(f"+{col}", justify="right")

    for row in range(start - start % 10, end, 10):
        cells = []
        for addr in range(row, row + 10):
            if addr < start or addr >= end:
                cells.append("")
                continue
            text = f"{mem[addr]:04d}"
            if addr == view.pointers.pc:
                text = f"[reverse]{text}[/reverse]"
            elif addr in view.breakpoints:
                text = f"[bold red]{text}[/bold red]"
            cells.append(text)
        table.add_row(f"{row:02d}", *cells)
    return table


def print_status(console: Console, view: ViewState):
    mem = view.memory
    pc = view.pointers.pc
    state = "HALTED" if view.halted else describe(mem[pc])
    console.print(f"{Registers(mem).display()}  [{pc:02d}] {state}", markup=False)


def print_output(console: Console, values: Iterable[int]):
    values = list(values)
    if values:
        console.print("OUT: " + " ".join(f"{v:04d}" for v in values), markup=False)


def show(console: Console, session: Session):
    view = session.view()
    console.print(registers_table(view))
    console.print(memory_table(view, "RAM", RAM_START, ROM_START))
    console.print(memory_table(view, "ROM", ROM_START, MEM_SIZE))
    print_status(console, view)
    print_output(console, view.output)


# ═════════════════════════════════════════════════════════════════════════════
# COMMAND IMPLEMENTATIONS
# ═════════════════════════════════════════════════════════════════════════════

def cmd_show(args, session: Session, console: Console) -> int:
    show(console, session)
    return 0


def cmd_step(args, session: Session, console: Console) -> int:
    for _ in range(args.count):
        if session.step() is StopReason.HALT:
            console.print("HALT")
            break
    print_status(console, session.view())
    print_output(console, session.output_log)
    return 0


def cmd_run(args, session: Session, console: Console) -> int:
    for addr in args.breaks or ():
        if not session.runner.has_breakpoint(addr):
            session.toggle_breakpoint(addr)
    interval = args.run_interval if args.run_interval is not None else 0.0
    max_steps = args.run_max_steps if args.run_max_steps is not None else args.max_steps

    try:
        reason = session.run_until_stop(max_steps=max_steps, interval=interval)
    except KeyboardInterrupt:
        reason = StopReason.CANCELLED
    console.print(f"stopped: {reason.value}")
    print_status(console, session.view())
    print_output(console, session.output_log)
    return 0


def cmd_poke(args, session: Session, console: Console) -> int:
    session.update_memory(args.address, args.value)
    console.print(f"@{args.address:02d} = {args.value:04d}")
    return 0


def cmd_input(args, session: Session, console: Console) -> int:
    session.set_input(args.value)
    console.print(f"IN = {args.value:04d}")
    return 0


def cmd_reset(args, session: Session, console: Console) -> int:
    session.reset()
    if args.program:
        session.reset_program(sample=True)
        console.print("registers and program reset")
    else:
        console.print("registers reset")
    print_status(console, session.view())
    return 0


def cmd_clear(args, session: Session, console: Console) -> int:
    backup = session.clear_program()
    console.print(f"program cleared (backup saved as '{backup}')")
    return 0


def cmd_disasm(args, session: Session, console: Console) -> int:
    for line in disassemble(session.memory):
        console.print(line, markup=False)
    return 0


def cmd_save(args, session: Session, console: Console) -> int:
    session.save_program_as(args.name)
    console.print(f"saved '{args.name}'")
    return 0


def cmd_load(args, session: Session, console: Console) -> int:
    if not session.load_program(args.name):
        print(f"Error: no saved program named '{args.name}'", file=sys.stderr)
        return 1
    console.print(f"loaded '{args.name}'")
    print_status(console, session.view())
    return 0


def cmd_list(args, session: Session, console: Console) -> int:
    names = session.saved_program_names()
    if not names:
        console.print("no saved programs")
    for name in names:
        console.print(name, markup=False)
    return 0


def cmd_delete(args, session: Session, console: Console) -> int:
    session.delete_program(args.name)
    console.print(f"deleted '{args.name}'")
    return 0


REPL_HELP = """\
  step [N]        execute N instructions (default 1)
  back            undo the last step
  run             run until HALT / breakpoint / input (Ctrl-C stops)
  break ADDR      toggle a breakpoint
  poke ADDR VAL   write a cell (ADDR may be a register name)
  in VAL          put a value on the IN port
  show            registers, RAM, ROM
  disasm          list the program
  reset           reset registers, clear output
  quit            exit"""


def cmd_repl(args, session: Session, console: Console) -> int:
    """Interactive debugger: type a command, see the machine state."""
    console.print(f"movsim {__version__} interactive debugger. Type 'help' for commands.")
    print_status(console, session.view())

    while True:
        try:
            line = input("MOV> ").strip()
        except (EOFError, KeyboardInterrupt):
            break

        if not line:
            continue
        parts = line.split()
        cmd, rest = parts[0].lower(), parts[1:]
        if cmd in ('quit', 'exit', 'q'):
            break

        try:
            if cmd == 'help':
                console.print(REPL_HELP, markup=False)
            elif cmd in ('step', 's'):
                count = parse_value(rest[0]) if rest else 1
                for _ in range(count):
                    if session.step() is StopReason.HALT:
                        console.print("HALT")
                        break
            elif cmd in ('back', 'b'):
                if not session.step_back():
                    console.print("nothing to undo")
            elif cmd == 'run':
                try:
                    reason = session.run_until_stop(max_steps=args.max_steps,
                                                    interval=args.interval)
                except KeyboardInterrupt:
                    reason = StopReason.CANCELLED
                console.print(f"stopped: {reason.value}")
            elif cmd == 'break':
                addr = parse_address(rest[0])
                state = "set" if session.toggle_breakpoint(addr) else "removed"
                console.print(f"breakpoint @{addr:02d} {state}")
            elif cmd == 'poke':
                session.update_memory(parse_address(rest[0]), parse_value(rest[1]))
            elif cmd == 'in':
                session.set_input(parse_value(rest[0]))
            elif cmd == 'show':
                show(console, session)
                continue
            elif cmd == 'disasm':
                for text in disassemble(session.memory):
                    console.print(text, markup=False)
                continue
            elif cmd == 'reset':
                session.reset()
            else:
                console.print(f"unknown command: {cmd} (try 'help')", markup=False)
                continue
        except IndexError:
            console.print(f"missing argument for '{cmd}' (try 'help')", markup=False)
            continue
        except ValueError as e:
            console.print(f"bad argument: {e}", markup=False)
            continue
        except MovSimError as e:
            console.print(f"error: {e}", markup=False)
            continue

        print_status(console, session.view())
        print_output(console, session.output_log)

    session.stop_run()
    return 0


COMMANDS = {
    'show': cmd_show,
    'step': cmd_step,
    'run': cmd_run,
    'poke': cmd_poke,
    'input': cmd_input,
    'reset': cmd_reset,
    'clear': cmd_clear,
    'disasm': cmd_disasm,
    'save': cmd_save,
    'load': cmd_load,
    'list': cmd_list,
    'delete': cmd_delete,
    'repl': cmd_repl,
}


# ═════════════════════════════════════════════════════════════════════════════
# ARGUMENT PARSING
# ═════════════════════════════════════════════════════════════════════════════

def build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(
        prog="movsim",
        description="Move-only teaching CPU simulator — step, run, edit, save",
        formatter_class=argparse.RawDescriptionHelpFormatter,
    )
    parser.add_argument("--version", action="version", version=f"movsim {__version__}")
    parser.add_argument("--store", default=str(DEFAULT_STORE_DIR),
                        help=f"Program store directory (default: {DEFAULT_STORE_DIR})")
    parser.add_argument("--interval", type=float, default=RUN_INTERVAL_S,
                        help="Delay between steps in the repl run loop (seconds)")
    parser.add_argument("--max-steps", type=int, default=None,
                        help="Step limit for run loops (default: unlimited)")
    parser.add_argument("-v", "--verbose", action="store_true", help="Debug logging on the console")
    parser.add_argument("--log-dir", default=None, help="Also write a timestamped log file here")
    sub = parser.add_subparsers(dest="command", metavar="command")

    # ── show ─────────────────────────────────────────────────────────────
    sub.add_parser("show", help="Registers, RAM, ROM and the output log")

    # ── step ─────────────────────────────────────────────────────────────
    p_step = sub.add_parser("step", help="Execute instructions one at a time")
    p_step.add_argument("-n", "--count", type=int, default=1, help="Number of steps (default 1)")

    # ── run ──────────────────────────────────────────────────────────────
    p_run = sub.add_parser("run", help="Run until HALT, breakpoint, input or step limit")
    p_run.add_argument("--max-steps", dest="run_max_steps", type=int, default=None,
                       help="Stop after this many steps")
    p_run.add_argument("--interval", dest="run_interval", type=float, default=None,
                       help="Delay between steps in seconds (default 0)")
    p_run.add_argument("--break", dest="breaks", type=parse_address, action="append",
                       metavar="ADDR", help="Breakpoint address (repeatable)")

    # ── poke / input ─────────────────────────────────────────────────────
    p_poke = sub.add_parser("poke", help="Write one memory cell")
    p_poke.add_argument("address", type=parse_address, help="Address 0-99 or register name")
    p_poke.add_argument("value", type=parse_value, help="Value 0-9999")

    p_in = sub.add_parser("input", help="Put a value on the IN port (@12)")
    p_in.add_argument("value", type=parse_value, help="Value 0-9999")

    # ── reset / clear ────────────────────────────────────────────────────
    p_reset = sub.add_parser("reset", help="Reset registers to their defaults")
    p_reset.add_argument("--program", action="store_true",
                         help="Also restore the sample program in ROM")
    sub.add_parser("clear", help="Back up and wipe the current program")

    # ── disasm ───────────────────────────────────────────────────────────
    sub.add_parser("disasm", help="List the ROM as MOV instructions")

    # ── storage ──────────────────────────────────────────────────────────
    for cmd, text in (("save", "Save the current image"),
                      ("load", "Load a saved image"),
                      ("delete", "Delete a saved image")):
        p = sub.add_parser(cmd, help=text)
        p.add_argument("name", help="Program name (letters, digits, '_', '-', '.')")
    sub.add_parser("list", help="List saved images")

    # ── repl ─────────────────────────────────────────────────────────────
    sub.add_parser("repl", help="Interactive debugger")

    return parser


def main(argv: Optional[List[str]] = None) -> int:
    parser = build_parser()
    args = parser.parse_args(argv)
    if not args.command:
        parser.print_help()
        return 0

    setup_logging(
        console_level=logging.DEBUG if args.verbose else logging.WARNING,
        log_dir=args.log_dir,
    )
    console = Console(highlight=False)

    try:
        session = Session(JsonFileStorage(args.store), interval=args.interval)
        return COMMANDS[args.command](args, session, console)
    except MovSimError as e:
        print(f"Error: {e}", file=sys.stderr)
        return 1


if __name__ == "__main__":
    sys.exit(main())
