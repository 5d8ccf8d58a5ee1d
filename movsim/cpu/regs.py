"""
movsim — Reserved Address Map + Register View

The machine has no register file of its own: every register is a cell of
the 100-cell memory. This module names those cells and gives a read-only,
attribute-style view of them over a memory snapshot.

Register map:
  00  HALT  constant 0, jumping PC here halts
  01  PC    program counter
  02  A     operand register
  03  B     operand register
  04  SUM   derived: (A + B) mod 10000
  05  SUB   derived: (A - B + 10000) mod 10000
  06  CMP   derived: 1 if A > B else 0
  07  TRN   derived: A if C != 0 else B
  08  C     operand register (condition)
  09  TMP   scratch register
  10  GP1   general-purpose
  11  OUT   output port
  12  IN    input port
  13-49     RAM
  50-99     ROM (program words)
"""

MEM_SIZE = 100          # addresses 00-99
WORD_MODULO = 10000     # 4 decimal digits per cell
MAX_VALUE = WORD_MODULO - 1

# Reserved addresses
HALT = 0
PC = 1
A = 2
B = 3
SUM = 4
SUB = 5
CMP = 6
TRN = 7
C = 8
TMP = 9
GP1 = 10
OUT = 11
IN = 12

RAM_START = 13
ROM_START = 50

OPERANDS = (A, B, C)
DERIVED = (SUM, SUB, CMP, TRN)

REGISTER_NAMES = {
    HALT: 'HALT',
    PC: 'PC',
    A: 'A',
    B: 'B',
    SUM: 'SUM',
    SUB: 'SUB',
    CMP: 'CMP',
    TRN: 'TRN',
    C: 'C',
    TMP: 'TMP',
    GP1: 'GP1',
    OUT: 'OUT',
    IN: 'IN',
}

NAME_TO_ADDRESS = {name: addr for addr, name in REGISTER_NAMES.items()}


def cell_name(addr: int) -> str:
    """Display name for an address: register name, else '@NN'."""
    return REGISTER_NAMES.get(addr, f'@{addr:02d}')


def is_rom(addr: int) -> bool:
    return ROM_START <= addr < MEM_SIZE


class Registers:
    """Read-only register view over a memory snapshot.

    Usage:
        regs = Registers(sim.memory)
        regs.A, regs.PC, regs.SUM
    """

    __slots__ = ('_mem',)

    def __init__(self, memory):
        self._mem = memory

    @property
    def PC(self) -> int:
        return self._mem[PC]

    @property
    def A(self) -> int:
        return self._mem[A]

    @property
    def B(self) -> int:
        return self._mem[B]

    @property
    def C(self) -> int:
        return self._mem[C]

    @property
    def SUM(self) -> int:
        return self._mem[SUM]

    @property
    def SUB(self) -> int:
        return self._mem[SUB]

    @property
    def CMP(self) -> int:
        return self._mem[CMP]

    @property
    def TRN(self) -> int:
        return self._mem[TRN]

    @property
    def TMP(self) -> int:
        return self._mem[TMP]

    @property
    def GP1(self) -> int:
        return self._mem[GP1]

    @property
    def OUT(self) -> int:
        return self._mem[OUT]

    @property
    def IN(self) -> int:
        return self._mem[IN]

    def as_dict(self) -> dict:
        """All named registers, in address order."""
        return {name: self._mem[addr] for addr, name in REGISTER_NAMES.items()}

    def display(self) -> str:
        """One-line register dump for trace output."""
        return (f"PC={self.PC:02d} A={self.A:04d} B={self.B:04d} C={self.C:04d} "
                f"TMP={self.TMP:04d} OUT={self.OUT:04d}")
