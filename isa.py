"""
tinyAsm Instruction Set
========================
The fixed opcode table and the argument type checker shared by the
parser (asm.py) and the execution engine (tinyasm.py).

Four operations over ten integer slots (A-J):

  ADD slot1 slot2         slot2 += slot1
  SUB slot1 slot2         slot2 -= slot1
  STR number slot         slot := number
  BNE slot1 slot2 label   jump to label unless slot1 == slot2
"""

from __future__ import annotations
import re
from typing import NamedTuple, Optional

# ---------------------------------------------------------------------------
#  Syntax constants
# ---------------------------------------------------------------------------

SLOT_NAMES = "ABCDEFGHIJ"
COMMENT_CHAR = "#"
LABEL_CHAR = ">"

# Argument types
T_NUMBER = "number"
T_SLOT   = "slot"
T_LABEL  = "label"

# Opcode names
OP_ADD = "ADD"
OP_SUB = "SUB"
OP_STR = "STR"
OP_BNE = "BNE"

# ---------------------------------------------------------------------------
#  Registry
# ---------------------------------------------------------------------------

class Param(NamedTuple):
    name: str
    type: str


class OpDef(NamedTuple):
    name: str
    params: tuple[Param, ...]
    desc: str

    @property
    def arity(self) -> int:
        return len(self.params)

    def signature(self) -> str:
        """e.g. 'BNE slot1 slot2 label'"""
        return " ".join([self.name] + [p.name for p in self.params])


OPCODES: dict[str, OpDef] = {
    OP_ADD: OpDef(OP_ADD, (Param("slot1", T_SLOT), Param("slot2", T_SLOT)),
                  "Adds value in slot1 to value in slot2."),
    OP_SUB: OpDef(OP_SUB, (Param("slot1", T_SLOT), Param("slot2", T_SLOT)),
                  "Subtracts value in slot1 from value in slot2."),
    OP_STR: OpDef(OP_STR, (Param("number", T_NUMBER), Param("slot", T_SLOT)),
                  "Stores number in slot."),
    OP_BNE: OpDef(OP_BNE, (Param("slot1", T_SLOT), Param("slot2", T_SLOT),
                           Param("label", T_LABEL)),
                  "Jumps to label if value in slot1 doesn't equal value in slot2."),
}


def lookup(op: str) -> Optional[OpDef]:
    """Return the definition of `op`, or None if it is not an opcode."""
    return OPCODES.get(op)


def arity(op: str) -> int:
    return OPCODES[op].arity

# ---------------------------------------------------------------------------
#  Type checker
# ---------------------------------------------------------------------------

_NUMBER_RE = re.compile(r"[+-]?[0-9]+")


def _check_number(tok: str) -> str:
    # ASCII digits, optional sign
    if not _NUMBER_RE.fullmatch(tok):
        return f"'{tok}' should be a number"
    return ""


def _check_slot(tok: str) -> str:
    if len(tok) != 1 or tok not in SLOT_NAMES:
        return f"'{tok}' should be a single upper-case character between A and J"
    return ""


def _check_label(tok: str) -> str:
    if " " in tok:
        return "Labels cannot contain spaces"
    if LABEL_CHAR in tok:
        return f"Labels cannot contain {LABEL_CHAR}"
    if COMMENT_CHAR in tok:
        return f"Labels cannot contain {COMMENT_CHAR}"
    return ""


_CHECKERS = {
    T_NUMBER: _check_number,
    T_SLOT:   _check_slot,
    T_LABEL:  _check_label,
}


def check_type(tok: str, type_name: str) -> str:
    """
    Validate one textual argument against a declared type.
    Returns "" if `tok` is valid, otherwise a description of the problem.
    """
    checker = _CHECKERS.get(type_name)
    if checker is None:
        raise ValueError(f"Unknown argument type: {type_name!r}")
    return checker(tok)
