"""
movsim — Breakpoint & Run Controller

Drives Simulator.step() repeatedly, either inline (run_until_stop) or on
a background thread (start/stop). The engine never blocks; every pause
condition is decided here.

Loop, per iteration:
  1. HALT word at PC         -> stop (HALT)
  2. step limit reached      -> stop (LIMIT)
  3. step()
  4. new PC is a breakpoint  -> stop (BREAK)
  5. the step read IN (@12)  -> stop (INPUT), wait for the user
     (the IN value present at the pause has already been consumed; a
     new value is picked up by the next instruction that reads @12)
  6. wait `interval`; a cancel request is observed here -> stop (CANCELLED)

A step that has started always completes and lands in the history
before cancellation is seen. All stop reasons are normal terminations.
"""

import logging
import threading
from typing import Callable, FrozenSet, List, Optional, Set

from .config import JOIN_TIMEOUT_S, RUN_INTERVAL_S
from .cpu.regs import IN, PC
from .emu import Simulator, StopReason
from .mem.memory import check_address

log = logging.getLogger(__name__)

StopListener = Callable[[StopReason], None]


class RunController:
    """Breakpoint set + cancellable automatic run loop."""

    def __init__(self, simulator: Simulator, interval: float = RUN_INTERVAL_S):
        self.sim = simulator
        self.interval = interval
        self.last_stop_reason: Optional[StopReason] = None

        self._breakpoints: Set[int] = set()
        self._stop_listeners: List[StopListener] = []
        self._cancel = threading.Event()
        self._thread: Optional[threading.Thread] = None

    # ══════════════════════════════════════════════
    # Breakpoints
    # ══════════════════════════════════════════════

    @property
    def breakpoints(self) -> FrozenSet[int]:
        return frozenset(self._breakpoints)

    def toggle(self, addr: int) -> bool:
        """Add or remove a breakpoint. Returns True if addr is now a breakpoint."""
        check_address(addr)
        if addr in self._breakpoints:
            self._breakpoints.discard(addr)
            log.info("breakpoint @%02d removed", addr)
            return False
        self._breakpoints.add(addr)
        log.info("breakpoint @%02d set", addr)
        return True

    def has_breakpoint(self, addr: int) -> bool:
        return addr in self._breakpoints

    def clear_breakpoints(self):
        self._breakpoints.clear()

    # ══════════════════════════════════════════════
    # Inline run
    # ══════════════════════════════════════════════

    def run_until_stop(self, max_steps: Optional[int] = None,
                       interval: float = 0.0) -> StopReason:
        """Run on the calling thread until a stop condition holds."""
        self._cancel.clear()
        reason = self._loop(max_steps, interval)
        self.last_stop_reason = reason
        return reason

    def _loop(self, max_steps: Optional[int], interval: float) -> StopReason:
        sim = self.sim
        steps = 0
        while True:
            if sim.is_halted:
                return StopReason.HALT
            if max_steps is not None and steps >= max_steps:
                return StopReason.LIMIT

            sim.step()
            steps += 1

            if sim.memory[PC] in self._breakpoints:
                log.info("breakpoint hit at @%02d after %d steps", sim.memory[PC], steps)
                return StopReason.BREAK
            executed = sim.history.peek_last()
            if executed is not None and executed.src == IN:
                log.info("input read at @%02d, pausing for input", executed.pc_before)
                return StopReason.INPUT

            if interval > 0:
                if self._cancel.wait(interval):
                    return StopReason.CANCELLED
            elif self._cancel.is_set():
                return StopReason.CANCELLED

    # ══════════════════════════════════════════════
    # Background run
    # ══════════════════════════════════════════════

    @property
    def is_running(self) -> bool:
        thread = self._thread
        return thread is not None and thread.is_alive()

    def start(self) -> bool:
        """Start the background run loop. False if it is already running."""
        if self.is_running:
            return False
        self._cancel.clear()
        self._thread = threading.Thread(target=self._run_thread, name="movsim-run", daemon=True)
        self._thread.start()
        log.debug("run loop started (interval %.3fs)", self.interval)
        return True

    def stop(self) -> bool:
        """Request cancellation and wait for the loop to finish its step.

        Returns True if a run loop was active.
        """
        thread = self._thread
        was_running = thread is not None and thread.is_alive()
        self._cancel.set()
        if thread is not None and thread is not threading.current_thread():
            thread.join(JOIN_TIMEOUT_S)
            if thread.is_alive():
                log.warning("run loop did not stop within %.1fs", JOIN_TIMEOUT_S)
        return was_running

    def wait(self, timeout: Optional[float] = None) -> Optional[StopReason]:
        """Block until the background loop ends; returns its stop reason."""
        thread = self._thread
        if thread is not None:
            thread.join(timeout)
        return self.last_stop_reason

    def add_stop_listener(self, callback: StopListener):
        """callback(reason) runs on the loop thread when a background run ends."""
        self._stop_listeners.append(callback)

    def _run_thread(self):
        reason = self._loop(None, self.interval)
        self.last_stop_reason = reason
        log.info("run loop stopped: %s", reason.value)
        for cb in list(self._stop_listeners):
            cb(reason)
