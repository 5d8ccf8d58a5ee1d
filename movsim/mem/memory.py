"""
movsim — 100-Cell Memory Model with Region Map

Memory map:
  00-12  Registers (HALT, PC, A, B, SUM, SUB, CMP, TRN, C, TMP, GP1, OUT, IN)
  13-49  RAM (general-purpose cells)
  50-99  ROM (program instruction words, still editable by the user)

Every cell holds a 4-decimal-digit value (0-9999).

Snapshots are immutable. The engine never mutates memory in place: it
takes a list copy with to_list(), edits the copy, and freezes it back
into a new MemorySnapshot. Readers holding the old snapshot never see a
partially written state.
"""

from typing import Dict, Iterable, Iterator, List, Mapping, Optional, Tuple

from ..cpu.derived import recompute
from ..cpu.regs import (
    MEM_SIZE, MAX_VALUE, HALT, PC, A, B, C, RAM_START, ROM_START, cell_name,
)
from ..errors import InvalidAddress, InvalidValue


class MemoryRegion:
    """A named region of the 100-cell address space."""

    def __init__(self, name: str, start: int, end: int):
        self.name = name
        self.start = start
        self.end = end  # inclusive

    def contains(self, addr: int) -> bool:
        return self.start <= addr <= self.end

    @property
    def size(self) -> int:
        return self.end - self.start + 1

    def __repr__(self) -> str:
        return f"MemoryRegion({self.name!r}, {self.start:02d}-{self.end:02d})"


REGIONS = [
    MemoryRegion('REGS', HALT, RAM_START - 1),
    MemoryRegion('RAM', RAM_START, ROM_START - 1),
    MemoryRegion('ROM', ROM_START, MEM_SIZE - 1),
]

# Sample program: swap A and B through TMP, print both, halt.
#   50: 0209  A   -> TMP
#   51: 0302  B   -> A
#   52: 0903  TMP -> B
#   53: 0211  A   -> OUT
#   54: 0311  B   -> OUT
#   55: 0001  HALT -> PC   (jump to 00 = halt)
SAMPLE_PROGRAM = (209, 302, 903, 211, 311, 1)

# Register seed that goes with the sample program
DEMO_SEED = {A: 42, B: 10, C: 1}


def check_address(addr) -> int:
    """Return addr if it is a valid address, else raise InvalidAddress."""
    if isinstance(addr, bool) or not isinstance(addr, int) or not 0 <= addr < MEM_SIZE:
        raise InvalidAddress(addr)
    return addr


def check_value(value, addr: Optional[int] = None) -> int:
    """Return value if it fits a 4-digit cell, else raise InvalidValue."""
    if isinstance(value, bool) or not isinstance(value, int) or not 0 <= value <= MAX_VALUE:
        where = f" at {cell_name(addr)}" if addr is not None else ""
        raise InvalidValue(f"Cell value out of range{where}: {value!r} (expected 0-{MAX_VALUE})")
    return value


def check_cell(addr, value) -> int:
    """Validate a direct edit: address, 4-digit range, PC and HALT rules."""
    check_value(value, check_address(addr))
    if addr == PC and value >= MEM_SIZE:
        raise InvalidValue(f"PC must point at an address (0-{MEM_SIZE - 1}), got {value}")
    if addr == HALT and value != 0:
        raise InvalidValue(f"HALT cell is constant 0, got {value}")
    return value


def region_of(addr: int) -> MemoryRegion:
    """Return the region containing addr."""
    check_address(addr)
    for region in REGIONS:
        if region.contains(addr):
            return region
    raise InvalidAddress(addr)


class MemorySnapshot:
    """Immutable image of all 100 cells.

    read() and write() both validate the address; write() returns a new
    snapshot and leaves the receiver untouched.
    """

    __slots__ = ('_cells',)

    def __init__(self, cells: Optional[Iterable[int]] = None):
        if cells is None:
            cells = (0,) * MEM_SIZE
        frozen = tuple(cells)
        if len(frozen) != MEM_SIZE:
            raise InvalidValue(f"Memory image must have {MEM_SIZE} cells, got {len(frozen)}")
        for addr, value in enumerate(frozen):
            check_value(value, addr)
        self._cells = frozen

    @classmethod
    def zeroed(cls) -> 'MemorySnapshot':
        return cls()

    # --- Core read/write ---

    def read(self, addr: int) -> int:
        return self._cells[check_address(addr)]

    def write(self, addr: int, value: int) -> 'MemorySnapshot':
        """Return a copy of this snapshot with one cell replaced."""
        cells = self.to_list()
        cells[check_address(addr)] = check_value(value, addr)
        return MemorySnapshot(cells)

    def with_cells(self, updates: Mapping[int, int]) -> 'MemorySnapshot':
        """Return a copy with several cells replaced."""
        cells = self.to_list()
        for addr, value in updates.items():
            cells[check_address(addr)] = check_value(value, addr)
        return MemorySnapshot(cells)

    def to_list(self) -> List[int]:
        """Mutable copy of the cells, for building the next snapshot."""
        return list(self._cells)

    def rom(self) -> Tuple[int, ...]:
        return self._cells[ROM_START:]

    # --- Comparison ---

    def diff(self, other: 'MemorySnapshot') -> Dict[int, Tuple[int, int]]:
        """Compare two snapshots, return {addr: (mine, theirs)} for changes."""
        return {
            addr: (mine, theirs)
            for addr, (mine, theirs) in enumerate(zip(self._cells, other))
            if mine != theirs
        }

    # --- Dump ---

    def dump(self, start: int = 0, length: int = MEM_SIZE) -> str:
        """Ten cells per row, row label is the first address."""
        lines = []
        end = min(start + length, MEM_SIZE)
        for row in range(start, end, 10):
            cells = ' '.join(f'{v:04d}' for v in self._cells[row:min(row + 10, end)])
            lines.append(f'{row:02d}: {cells}')
        return '\n'.join(lines)

    # --- Sequence protocol ---

    def __getitem__(self, index):
        return self._cells[index]

    def __len__(self) -> int:
        return MEM_SIZE

    def __iter__(self) -> Iterator[int]:
        return iter(self._cells)

    def __eq__(self, other) -> bool:
        if isinstance(other, MemorySnapshot):
            return self._cells == other._cells
        if isinstance(other, (list, tuple)):
            return self._cells == tuple(other)
        return NotImplemented

    def __hash__(self) -> int:
        return hash(self._cells)

    def __repr__(self) -> str:
        return f"MemorySnapshot(PC={self._cells[PC]:02d}, A={self._cells[A]}, B={self._cells[B]})"


# --- Bulk resets ---

def reset_registers(snapshot: MemorySnapshot,
                    seed: Optional[Mapping[int, int]] = None) -> MemorySnapshot:
    """Cells 00-49 back to defaults (PC=50, everything else 0), ROM kept.

    seed overlays caller-supplied register values, e.g. DEMO_SEED.
    Derived registers are recomputed.
    """
    cells = snapshot.to_list()
    cells[HALT:ROM_START] = [0] * ROM_START
    cells[PC] = ROM_START
    for addr, value in (seed or {}).items():
        if check_address(addr) >= ROM_START:
            raise InvalidValue(f"Register seed cannot touch ROM ({cell_name(addr)})")
        cells[addr] = check_cell(addr, value)
    return MemorySnapshot(recompute(cells))


def reset_program(snapshot: MemorySnapshot, sample: bool = True) -> MemorySnapshot:
    """Cells 50-99 zeroed, optionally loaded with SAMPLE_PROGRAM. Registers kept."""
    cells = snapshot.to_list()
    cells[ROM_START:] = [0] * (MEM_SIZE - ROM_START)
    if sample:
        cells[ROM_START:ROM_START + len(SAMPLE_PROGRAM)] = SAMPLE_PROGRAM
    return MemorySnapshot(cells)


def initial_memory(seed: Optional[Mapping[int, int]] = None,
                   sample: bool = True) -> MemorySnapshot:
    """Power-on image: default registers, then the sample program."""
    return reset_program(reset_registers(MemorySnapshot.zeroed(), seed), sample)
