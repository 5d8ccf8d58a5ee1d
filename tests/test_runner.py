"""
Run controller tests — breakpoints, stop reasons, background thread.
"""

import threading

import pytest

from movsim.cpu.regs import A, IN, PC
from movsim.emu import Simulator, StopReason
from movsim.errors import InvalidAddress
from movsim.mem.memory import DEMO_SEED, initial_memory
from movsim.runner import RunController


def _demo_runner(**kwargs) -> RunController:
    return RunController(Simulator(initial_memory(seed=DEMO_SEED)), **kwargs)


def _loop_runner(**kwargs) -> RunController:
    """Endless loop: @20 = 49, 2001 jumps back to 50 forever."""
    mem = initial_memory(sample=False).to_list()
    mem[20] = 49
    mem[50] = 2001
    return RunController(Simulator(mem), **kwargs)


class TestBreakpoints:
    def test_toggle(self):
        runner = _demo_runner()
        assert runner.toggle(53) is True
        assert runner.has_breakpoint(53)
        assert runner.toggle(53) is False
        assert runner.breakpoints == frozenset()

    def test_toggle_rejects_bad_address(self):
        with pytest.raises(InvalidAddress):
            _demo_runner().toggle(100)

    def test_clear(self):
        runner = _demo_runner()
        runner.toggle(51)
        runner.toggle(52)
        runner.clear_breakpoints()
        assert not runner.breakpoints


class TestRunUntilStop:
    def test_runs_to_halt(self):
        runner = _demo_runner()
        assert runner.run_until_stop() is StopReason.HALT
        assert runner.sim.regs.OUT == 42
        assert runner.last_stop_reason is StopReason.HALT

    def test_already_halted(self):
        runner = _demo_runner()
        runner.sim.reset_program(sample=False)
        assert runner.run_until_stop() is StopReason.HALT
        assert runner.sim.history_depth == 0

    def test_stops_at_breakpoint(self):
        """Breakpoint at 53: stops after the third step, before 0211 runs."""
        runner = _demo_runner()
        runner.toggle(53)
        assert runner.run_until_stop() is StopReason.BREAK
        assert runner.sim.regs.PC == 53
        assert runner.sim.history_depth == 3

    def test_resume_past_breakpoint(self):
        runner = _demo_runner()
        runner.toggle(53)
        runner.run_until_stop()
        assert runner.run_until_stop() is StopReason.HALT

    def test_step_limit(self):
        runner = _loop_runner()
        assert runner.run_until_stop(max_steps=10) is StopReason.LIMIT
        assert runner.sim.history_depth == 10

    def test_pauses_after_reading_input(self):
        """1202 reads IN into A; the run pauses right after it."""
        mem = initial_memory(sample=False).to_list()
        mem[50:53] = [1202, 211, 1]
        runner = RunController(Simulator(mem))
        runner.sim.update_memory(IN, 5)
        assert runner.run_until_stop() is StopReason.INPUT
        assert runner.sim.regs.A == 5
        assert runner.sim.regs.PC == 51
        assert runner.run_until_stop() is StopReason.HALT
        assert runner.sim.regs.OUT == 5


class TestBackgroundRun:
    def test_start_and_stop(self):
        runner = _loop_runner(interval=0.005)
        stopped = threading.Event()
        runner.add_stop_listener(lambda reason: stopped.set())

        assert runner.start() is True
        assert runner.start() is False       # already running
        assert runner.is_running

        assert runner.stop() is True
        assert not runner.is_running
        assert runner.last_stop_reason is StopReason.CANCELLED
        assert stopped.wait(1.0)
        assert runner.sim.memory[PC] == 50

    def test_background_run_to_halt(self):
        runner = _demo_runner(interval=0.001)
        reasons = []
        runner.add_stop_listener(reasons.append)
        runner.start()
        assert runner.wait(5.0) is StopReason.HALT
        assert reasons == [StopReason.HALT]
        assert runner.sim.regs.A == 10

    def test_stop_when_idle(self):
        assert _demo_runner().stop() is False

    def test_steps_land_in_history(self):
        """A cancelled run leaves every completed step undoable."""
        runner = _loop_runner(interval=0.005)
        runner.start()
        runner.stop()
        depth = runner.sim.history_depth
        for _ in range(depth):
            assert runner.sim.step_back()
        assert runner.sim.memory[A] == 0
        assert runner.sim.memory[PC] == 50
