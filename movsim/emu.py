"""
movsim — Execution Engine

This is the top-level class that integrates:
  - Memory snapshot (mem/memory.py)
  - Instruction decoder (cpu/decoder.py)
  - Derived register unit (cpu/derived.py)
  - History buffer (cpu/history.py)

Execution model, one step():
  1. Fetch word at PC. Word 0000 is HALT: no mutation, no history.
  2. Decode into (src, dst).
  3. Record a HistoryEntry from the pre-step snapshot.
  4. Copy the snapshot, write memory[src] into dst (writes to @00 dropped).
  5. Advance PC by one from the post-write PC. A write into PC is a jump
     to target+1; a jump to @00 leaves PC on the HALT cell.
  6. Recompute SUM/SUB/CMP/TRN.
  7. Publish the new snapshot, then notify subscribers and output
     listeners.

The engine itself has no "halted" state: halted-ness is read from memory
on every call (memory[memory[PC]] == 0).

Stop reasons (returned by step() and by the run controller):
  - HALT:       PC sits on a 0000 word
  - BREAK:      PC reached a breakpoint address
  - INPUT:      the step just executed read the IN port
  - LIMIT:      max_steps exhausted
  - CANCELLED:  run loop cancelled by the user
"""

import logging
from dataclasses import dataclass
from enum import Enum
from typing import Callable, Iterable, List, Mapping, Optional

from .config import HISTORY_CAPACITY
from .cpu.decoder import HALT_WORD, Instruction, decode, describe
from .cpu.derived import recompute
from .cpu.history import HistoryBuffer, HistoryEntry
from .cpu.regs import MEM_SIZE, HALT, PC, OUT, Registers
from .mem import memory as mem_model
from .mem.memory import MemorySnapshot, check_cell

log = logging.getLogger(__name__)


class StopReason(Enum):
    HALT = 'HALT'
    BREAK = 'BREAK'
    INPUT = 'INPUT'
    LIMIT = 'LIMIT'
    CANCELLED = 'CANCELLED'


@dataclass(frozen=True)
class Pointers:
    """Where the renderer should draw its arrows.

    pc is the address PC points at; read/write are the source and
    destination of the instruction about to execute (None while halted).
    """
    pc: int
    read: Optional[int]
    write: Optional[int]


@dataclass(frozen=True)
class OutputEvent:
    """A value written to OUT, or the retraction of one by step_back()."""
    value: int
    retracted: bool = False


SnapshotListener = Callable[[MemorySnapshot], None]
OutputListener = Callable[[OutputEvent], None]


class Simulator:
    """Move-only machine: step, step back, direct edits.

    Usage:
        sim = Simulator()                 # default registers + sample program
        sim.update_memory(2, 42)          # A = 42
        while sim.step() is None:
            pass
        sim.memory[OUT]
    """

    def __init__(self, memory: Optional[Iterable[int]] = None,
                 history_capacity: int = HISTORY_CAPACITY,
                 trace: bool = False):
        self.history = HistoryBuffer(history_capacity)
        self._subscribers: List[SnapshotListener] = []
        self._output_listeners: List[OutputListener] = []

        # Trace output
        self.trace = trace
        self.trace_output: List[str] = []

        if memory is None:
            self._memory = mem_model.initial_memory()
        else:
            self._memory = self._settle_image(memory)

    # ══════════════════════════════════════════════
    # State
    # ══════════════════════════════════════════════

    @property
    def memory(self) -> MemorySnapshot:
        """Current published snapshot. Never mutated after publish."""
        return self._memory

    @property
    def regs(self) -> Registers:
        return Registers(self._memory)

    @property
    def is_halted(self) -> bool:
        mem = self._memory
        return mem[mem[PC]] == HALT_WORD

    @property
    def current_instruction(self) -> Optional[Instruction]:
        """Decoded word at PC, or None on a HALT word."""
        mem = self._memory
        word = mem[mem[PC]]
        return None if word == HALT_WORD else decode(word)

    @property
    def pointers(self) -> Pointers:
        mem = self._memory
        insn = self.current_instruction
        if insn is None:
            return Pointers(mem[PC], None, None)
        return Pointers(mem[PC], insn.src, insn.dst)

    @property
    def history_depth(self) -> int:
        return len(self.history)

    # ══════════════════════════════════════════════
    # Execution
    # ══════════════════════════════════════════════

    def step(self) -> Optional[StopReason]:
        """Execute one instruction. Returns StopReason.HALT on a HALT word, else None."""
        mem = self._memory
        pc = mem[PC]
        instr = mem[pc]

        if instr == HALT_WORD:
            return StopReason.HALT

        src, dst = decode(instr)
        value = mem[src]

        self.history.push(HistoryEntry(
            pc_before=pc,
            instr=instr,
            src=src,
            dst=dst,
            value_src=value,
            value_dst=mem[dst],
            out_before=mem[OUT],
        ))

        cells = mem.to_list()
        if dst != HALT:
            cells[dst] = value

        # Advance from the post-write PC. A jump to @00 stays on the HALT cell.
        if dst == PC:
            target = cells[PC] % MEM_SIZE
            cells[PC] = HALT if target == HALT else (target + 1) % MEM_SIZE
        else:
            cells[PC] = (cells[PC] + 1) % MEM_SIZE

        recompute(cells)
        self._publish(cells)

        if self.trace:
            self.trace_output.append(
                f"{pc:02d}: {describe(instr):24s} {self.regs.display()}"
            )
        log.debug("step @%02d %04d: %02d -> %02d (value %d), PC=%02d",
                  pc, instr, src, dst, value, cells[PC])

        if dst == OUT:
            self._emit(OutputEvent(value))
        return None

    def step_back(self) -> bool:
        """Undo the newest step. False when there is nothing to undo."""
        entry = self.history.pop_last()
        if entry is None:
            return False

        cells = self._memory.to_list()
        cells[PC] = entry.pc_before
        cells[entry.dst] = entry.value_dst
        cells[OUT] = entry.out_before
        recompute(cells)
        self._publish(cells)

        if self.trace:
            self.trace_output.append(f"{entry.pc_before:02d}: <undo {describe(entry.instr)}>")
        log.debug("step back to @%02d (%04d), %d entries left",
                  entry.pc_before, entry.instr, len(self.history))

        if entry.dst == OUT:
            self._emit(OutputEvent(entry.value_src, retracted=True))
        return True

    # ══════════════════════════════════════════════
    # Direct edits (bypass history, invalidate it)
    # ══════════════════════════════════════════════

    def update_memory(self, addr: int, value: int):
        """Set one cell. Raises InvalidAddress / InvalidValue on bad input."""
        check_cell(addr, value)
        cells = self._memory.to_list()
        cells[addr] = value
        recompute(cells)
        self._publish(cells)
        self._invalidate_history("edit @%02d" % addr)

    def update_memory_array(self, image: Iterable[int]):
        """Replace all 100 cells (program load)."""
        self._memory = self._settle_image(image)
        self._notify()
        self._invalidate_history("bulk load")

    def reset(self, seed: Optional[Mapping[int, int]] = None):
        """Registers 00-49 back to defaults (plus seed); ROM untouched."""
        self._memory = mem_model.reset_registers(self._memory, seed)
        self._notify()
        self._invalidate_history("reset")

    def reset_program(self, sample: bool = True):
        """ROM 50-99 zeroed, optionally with the sample program; registers untouched."""
        self._memory = mem_model.reset_program(self._memory, sample)
        self._notify()
        self._invalidate_history("program reset")

    # ══════════════════════════════════════════════
    # Observers
    # ══════════════════════════════════════════════

    def subscribe(self, callback: SnapshotListener):
        """callback(snapshot) is called after every publish."""
        self._subscribers.append(callback)

    def unsubscribe(self, callback: SnapshotListener):
        self._subscribers = [cb for cb in self._subscribers if cb != callback]

    def add_output_listener(self, callback: OutputListener):
        """callback(OutputEvent) is called when OUT is written or un-written."""
        self._output_listeners.append(callback)

    def remove_output_listener(self, callback: OutputListener):
        self._output_listeners = [cb for cb in self._output_listeners if cb != callback]

    # ══════════════════════════════════════════════
    # Internals
    # ══════════════════════════════════════════════

    @staticmethod
    def _settle_image(image: Iterable[int]) -> MemorySnapshot:
        """Validate a full image and bring derived registers in line."""
        snapshot = MemorySnapshot(image)
        check_cell(HALT, snapshot[HALT])
        check_cell(PC, snapshot[PC])
        return MemorySnapshot(recompute(snapshot.to_list()))

    def _publish(self, cells: List[int]):
        self._memory = MemorySnapshot(cells)
        self._notify()

    def _notify(self):
        snapshot = self._memory
        for cb in list(self._subscribers):
            cb(snapshot)

    def _emit(self, event: OutputEvent):
        for cb in list(self._output_listeners):
            cb(event)

    def _invalidate_history(self, why: str):
        if not self.history.is_empty():
            log.info("%s: history cleared (%d entries dropped)", why, len(self.history))
        self.history.clear()
