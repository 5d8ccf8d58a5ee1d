"""
movsim — Session (engine + run controller + storage)

Everything a front end needs in one object: manual step/undo, the
background run, breakpoints, direct edits, the output log and program
persistence.

Rules:
  - Single writer: any manual mutation stops the run loop first.
  - Autosave: after every successful change the full image goes to the
    default storage slot, so the next session resumes where this one
    stopped.
  - Storage trouble never takes the simulator down: autosave/restore
    failures are logged and the session carries on. Explicit
    save/load/delete calls propagate StorageError to the caller.
"""

import logging
from dataclasses import dataclass
from datetime import datetime
from typing import List, Optional, Tuple

from .config import CLEAR_BACKUP_PREFIX, RUN_INTERVAL_S
from .cpu.decoder import HALT_WORD
from .cpu.regs import IN, PC
from .emu import OutputEvent, Pointers, Simulator, StopReason
from .errors import MovSimError, StorageError
from .mem.memory import MemorySnapshot
from .runner import RunController
from .storage import InMemoryStorage, Storage

log = logging.getLogger(__name__)


@dataclass(frozen=True)
class ViewState:
    """Everything a renderer draws, captured at one instant."""
    memory: MemorySnapshot
    pointers: Pointers
    output: Tuple[int, ...]
    breakpoints: frozenset
    running: bool
    halted: bool


class Session:
    """Application controller around one Simulator.

    Usage:
        session = Session(JsonFileStorage("~/.movsim/programs"))
        session.toggle_breakpoint(53)
        session.start_run()
        ...
        session.output_log
    """

    def __init__(self, storage: Optional[Storage] = None, autosave: bool = True,
                 interval: float = RUN_INTERVAL_S, restore: bool = True,
                 trace: bool = False):
        self.storage = storage if storage is not None else InMemoryStorage()
        self.autosave = autosave
        self.sim = Simulator(trace=trace)
        self.runner = RunController(self.sim, interval=interval)
        self._output: List[int] = []

        self.sim.add_output_listener(self._on_output)
        self.runner.add_stop_listener(self._on_run_stopped)

        if restore:
            self._restore()

    # ══════════════════════════════════════════════
    # State
    # ══════════════════════════════════════════════

    @property
    def memory(self) -> MemorySnapshot:
        return self.sim.memory

    @property
    def output_log(self) -> List[int]:
        return list(self._output)

    @property
    def is_running(self) -> bool:
        return self.runner.is_running

    @property
    def is_halted(self) -> bool:
        return self.sim.is_halted

    def view(self) -> ViewState:
        memory = self.sim.memory
        return ViewState(
            memory=memory,
            pointers=self.sim.pointers,
            output=tuple(self._output),
            breakpoints=self.runner.breakpoints,
            running=self.runner.is_running,
            halted=memory[memory[PC]] == HALT_WORD,
        )

    # ══════════════════════════════════════════════
    # Execution control
    # ══════════════════════════════════════════════

    def step(self) -> Optional[StopReason]:
        """One manual step. Returns StopReason.HALT when sitting on a HALT word."""
        self.runner.stop()
        reason = self.sim.step()
        if reason is None:
            self._autosave()
        return reason

    def step_back(self) -> bool:
        self.runner.stop()
        undone = self.sim.step_back()
        if undone:
            self._autosave()
        return undone

    def start_run(self) -> bool:
        return self.runner.start()

    def stop_run(self) -> bool:
        stopped = self.runner.stop()
        if stopped:
            self._autosave()
        return stopped

    def toggle_run(self) -> bool:
        """Start if idle, stop if running. Returns the new running state."""
        if self.runner.is_running:
            self.stop_run()
            return False
        return self.start_run()

    def run_until_stop(self, max_steps: Optional[int] = None,
                       interval: float = 0.0) -> StopReason:
        """Inline run on the calling thread (CLI, tests)."""
        self.runner.stop()
        reason = self.runner.run_until_stop(max_steps=max_steps, interval=interval)
        self._autosave()
        return reason

    def toggle_breakpoint(self, addr: int) -> bool:
        return self.runner.toggle(addr)

    # ══════════════════════════════════════════════
    # Edits
    # ══════════════════════════════════════════════

    def update_memory(self, addr: int, value: int):
        self.runner.stop()
        self.sim.update_memory(addr, value)
        self._autosave()

    def set_input(self, value: int):
        """Put a value on the IN port (@12)."""
        self.update_memory(IN, value)

    def reset(self):
        """Registers back to defaults, output cleared, program kept."""
        self.runner.stop()
        self.sim.reset()
        self._output.clear()
        self._autosave()

    def reset_program(self, sample: bool = True):
        """ROM back to the sample program (or all HALT); registers kept."""
        self.runner.stop()
        self.sim.reset_program(sample=sample)
        self._autosave()

    def clear_program(self) -> str:
        """Back the current image up, then reset and zero the ROM.

        Returns the backup name.
        """
        backup = CLEAR_BACKUP_PREFIX + datetime.now().strftime('%Y%m%d_%H%M%S')
        self.save_program_as(backup)
        self.reset()
        self.sim.reset_program(sample=False)
        self._autosave()
        return backup

    # ══════════════════════════════════════════════
    # Persistence
    # ══════════════════════════════════════════════

    def save_program(self):
        self.storage.save(None, self.sim.memory.to_list())

    def save_program_as(self, name: str):
        self.storage.save(name, self.sim.memory.to_list())

    def load_program(self, name: Optional[str] = None) -> bool:
        """Replace all 100 cells with the named image. False if nothing is stored under name.

        A rejected image leaves memory, history and the output log untouched.
        """
        image = self.storage.load(name)
        if image is None:
            return False
        self.runner.stop()
        self.sim.update_memory_array(image)
        self._output.clear()
        self._autosave()
        return True

    def saved_program_names(self) -> List[str]:
        return self.storage.list_names()

    def delete_program(self, name: str):
        self.storage.delete(name)

    # ══════════════════════════════════════════════
    # Internals
    # ══════════════════════════════════════════════

    def _restore(self):
        try:
            image = self.storage.load(None)
        except StorageError as e:
            log.warning("could not restore saved program, starting fresh: %s", e)
            return
        if image is None:
            return
        try:
            self.sim.update_memory_array(image)
        except MovSimError as e:
            log.warning("saved program rejected, starting fresh: %s", e)
            return
        log.info("restored saved program (PC=%02d)", self.sim.memory[PC])

    def _autosave(self):
        if not self.autosave:
            return
        try:
            self.save_program()
        except StorageError as e:
            log.warning("autosave failed: %s", e)

    def _on_output(self, event: OutputEvent):
        if event.retracted:
            if self._output and self._output[-1] == event.value:
                self._output.pop()
        else:
            self._output.append(event.value)

    def _on_run_stopped(self, reason: StopReason):
        log.debug("background run ended: %s", reason.value)
        self._autosave()
