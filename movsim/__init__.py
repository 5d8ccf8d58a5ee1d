"""
movsim — Move-Only Teaching CPU Simulator
=========================================
A 100-cell machine whose only instruction is "copy cell src to cell dst".
Arithmetic, comparison and branching fall out of a few memory-mapped
registers that are recomputed after every write.

Architecture:
    ┌──────────┐    ┌──────────┐    ┌──────────┐    ┌───────────┐
    │   CLI    │───>│ Session  │───>│ RunCtrl  │───>│ Simulator │
    │ (repl)   │    │(autosave)│    │ (thread) │    │  (step)   │
    └──────────┘    └────┬─────┘    └──────────┘    └─────┬─────┘
                         │                                │
                    ┌────┴─────┐                    ┌─────┴─────┐
                    │ Storage  │                    │  Memory   │
                    │  (JSON)  │                    │ snapshots │
                    └──────────┘                    └───────────┘

    - mem/memory.py:   immutable 100-cell snapshots, region map, validation
    - cpu/regs.py:     address map and the read-only register view
    - cpu/decoder.py:  word <-> (src, dst), mnemonics, ROM listing
    - cpu/derived.py:  SUM / SUB / CMP / TRN recomputation
    - cpu/history.py:  bounded undo buffer
    - emu.py:          step, step back, direct edits, observers
    - runner.py:       breakpoints and the cancellable run loop
    - storage.py:      storage port, in-memory and JSON file adapters
    - session.py:      everything a front end needs in one object
"""

__version__ = "0.1.0"

from .errors import MovSimError, InvalidAddress, InvalidValue, StorageError
from .mem.memory import MemorySnapshot, initial_memory
from .emu import Simulator, StopReason, Pointers, OutputEvent
from .runner import RunController
from .storage import Storage, InMemoryStorage, JsonFileStorage
from .session import Session, ViewState
