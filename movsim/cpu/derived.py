"""
movsim — Derived Register Unit

The only arithmetic the machine has. SUM, SUB, CMP and TRN are never
stored independently: they are recomputed from A, B and C after every
mutation that could touch an operand (step write, undo restore, direct
edit, bulk load).

  SUM = (A + B) mod 10000
  SUB = (A - B + 10000) mod 10000    non-negative under 4-digit wraparound
  CMP = 1 if A > B else 0
  TRN = A if C != 0 else B           the machine's only conditional
"""

from typing import List, Sequence, Tuple

from .regs import A, B, C, SUM, SUB, CMP, TRN, WORD_MODULO


def derived_values(a: int, b: int, c: int) -> Tuple[int, int, int, int]:
    """Return (SUM, SUB, CMP, TRN) for the given operands."""
    return (
        (a + b) % WORD_MODULO,
        (a - b + WORD_MODULO) % WORD_MODULO,
        1 if a > b else 0,
        a if c != 0 else b,
    )


def recompute(cells: List[int]) -> List[int]:
    """Rewrite cells 4-7 in place on a snapshot being built.

    Returns the same list so callers can chain it.
    """
    cells[SUM], cells[SUB], cells[CMP], cells[TRN] = derived_values(
        cells[A], cells[B], cells[C])
    return cells


def is_consistent(cells: Sequence[int]) -> bool:
    """True when cells 4-7 match A, B and C."""
    expected = derived_values(cells[A], cells[B], cells[C])
    return tuple(cells[SUM:TRN + 1]) == expected
