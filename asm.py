"""
tinyAsm Parser
===============
Turns tinyAsm source text into a validated instruction sequence plus a
label table.

Syntax:
  - One instruction per line: OP arg1 arg2 ...  (whitespace separated)
  - Labels: a line starting with '>' names the index of the next instruction
  - Comments: '#' to end of line
  - Blank lines are ignored

Arguments are validated here but kept as raw strings; the engine coerces
them when the instruction executes.

Usage:
  from asm import parse
  program = parse(source_text)
"""

from __future__ import annotations
from dataclasses import dataclass, field
from types import MappingProxyType
from typing import Mapping, NamedTuple, Optional

from isa import COMMENT_CHAR, LABEL_CHAR, T_LABEL, check_type, lookup


class AsmError(Exception):
    def __init__(self, line: int, text: str, reason: str):
        self.line = line
        self.text = text
        self.reason = reason
        super().__init__(f"Line {line}: Invalid line: {text} ({reason})")


class Instruction(NamedTuple):
    op: str
    args: tuple[str, ...]
    line: int = 0


@dataclass(frozen=True)
class Program:
    instructions: tuple[Instruction, ...] = ()
    # read-only view; the table never changes after parsing
    labels: Mapping[str, int] = field(
        default_factory=lambda: MappingProxyType({}), hash=False)
    # (line, label) for every declaration that replaced an earlier one
    redefined: tuple[tuple[int, str], ...] = ()

    def __len__(self) -> int:
        return len(self.instructions)

# ---------------------------------------------------------------------------
#  Line helpers
# ---------------------------------------------------------------------------

def strip_line(raw: str) -> str:
    """Drop the comment (if any) and surrounding whitespace."""
    idx = raw.find(COMMENT_CHAR)
    if idx >= 0:
        raw = raw[:idx]
    return raw.strip()


def _parse_instruction(text: str) -> tuple[Optional[str], str, tuple[str, ...]]:
    """Split and validate one instruction line. Returns (error, op, args)."""
    tokens = text.split()
    op, args = tokens[0], tuple(tokens[1:])

    opdef = lookup(op)
    if opdef is None:
        return f"'{op}' is not a valid operation", op, args

    if len(args) != opdef.arity:
        return (f"'{op}' needs {opdef.arity} arguments, "
                f"but was given {len(args)}"), op, args

    for arg, param in zip(args, opdef.params):
        err = check_type(arg, param.type)
        if err:
            return err, op, args

    return None, op, args

# ---------------------------------------------------------------------------
#  Parser
# ---------------------------------------------------------------------------

def parse(source: str) -> Program:
    """
    Parse a whole program. Raises AsmError on the first invalid line;
    nothing is kept from a failed parse.

    Labels map to the index the next instruction will occupy, so forward
    references work: the table is complete before anything executes.
    A repeated label silently replaces the earlier mapping.
    """
    instructions: list[Instruction] = []
    labels: dict[str, int] = {}
    redefined: list[tuple[int, str]] = []

    for lineno, raw in enumerate(source.split("\n"), 1):
        text = strip_line(raw)
        if not text:
            continue
        original = raw.rstrip("\r")

        if text[0] == LABEL_CHAR:
            label = text[1:].strip()
            err = check_type(label, T_LABEL)
            if err:
                raise AsmError(lineno, original, err)
            if label in labels:
                redefined.append((lineno, label))
            labels[label] = len(instructions)
            continue

        err, op, args = _parse_instruction(text)
        if err:
            raise AsmError(lineno, original, err)
        instructions.append(Instruction(op, args, lineno))

    return Program(tuple(instructions), MappingProxyType(labels), tuple(redefined))

# ---------------------------------------------------------------------------
#  Rendering
# ---------------------------------------------------------------------------

def format_instruction(instr: Instruction) -> str:
    return " ".join((instr.op,) + instr.args)


def format_program(program: Program) -> str:
    """Serialize a program back to source text (no comments)."""
    by_index: dict[int, list[str]] = {}
    for label, idx in program.labels.items():
        by_index.setdefault(idx, []).append(label)

    out = []
    for i, instr in enumerate(program.instructions):
        for label in by_index.pop(i, []):
            out.append(f"{LABEL_CHAR}{label}")
        out.append(format_instruction(instr))
    # Labels pointing at or past the end of the program
    for idx in sorted(by_index):
        for label in by_index[idx]:
            out.append(f"{LABEL_CHAR}{label}")
    return "\n".join(out) + "\n" if out else ""


def listing(program: Program, pc: Optional[int] = None) -> list[str]:
    """Numbered 'i: OP args' lines; the instruction at `pc` is marked '>'."""
    width = len(str(max(len(program) - 1, 0)))
    lines = []
    for i, instr in enumerate(program.instructions):
        mark = ">" if i == pc else " "
        lines.append(f"{mark} {i:>{width}d}: {format_instruction(instr)}")
    return lines
