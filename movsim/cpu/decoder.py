"""
movsim — Instruction Decoder / Disassembler

There is exactly one instruction: MOV. A program word packs two 2-digit
addresses into one 4-digit decimal number:

    word = src * 100 + dst        e.g. 0209 = copy @02 (A) into @09 (TMP)

Word 0000 (src = dst = 0) is the HALT encoding. Jumps are ordinary moves
into @01 (PC); moving the constant @00 into PC is the halt idiom (0001).

decode() is pure and total: it never validates. A cell may hold any value
0-9999, so src and dst always land in 0-99.
"""

from typing import List, NamedTuple

from .regs import MEM_SIZE, PC, HALT, ROM_START, cell_name
from ..errors import InvalidAddress

HALT_WORD = 0


class Instruction(NamedTuple):
    src: int
    dst: int


def decode(word: int) -> Instruction:
    """Split a packed word into (src, dst)."""
    return Instruction(word // 100, word % 100)


def encode(src: int, dst: int) -> int:
    """Pack src and dst into one instruction word."""
    for addr in (src, dst):
        if not 0 <= addr < MEM_SIZE:
            raise InvalidAddress(addr)
    return src * 100 + dst


def describe(word: int) -> str:
    """Human-readable form of one word.

    0000  HALT
    0209  MOV A -> TMP
    0001  JMP HALT            (PC <- @00, halts)
    0301  JMP B               (PC <- B, continues at B+1)
    """
    if word == HALT_WORD:
        return f"{word:04d}  HALT"
    src, dst = decode(word)
    if dst == PC:
        if src == HALT:
            return f"{word:04d}  JMP HALT"
        return f"{word:04d}  JMP {cell_name(src)}"
    return f"{word:04d}  MOV {cell_name(src)} -> {cell_name(dst)}"


def disassemble(memory, start: int = ROM_START, end: int = MEM_SIZE) -> List[str]:
    """Listing lines 'NN: WWWW  MNEMONIC' for memory[start:end].

    Trailing HALT words are collapsed into a single line.
    """
    last = end
    while last > start and memory[last - 1] == HALT_WORD:
        last -= 1
    lines = [f"{addr:02d}: {describe(memory[addr])}" for addr in range(start, last)]
    if last < end:
        lines.append(f"{last:02d}: {describe(HALT_WORD)}" +
                     (f"  (..{end - 1:02d})" if end - last > 1 else ""))
    return lines
