"""
tinyAsm Execution Engine
=========================
A stepping interpreter for parsed tinyAsm programs (see asm.py).

A TinyAsm session owns the ten slots and the program counter for one
loaded program.  Each call to step() executes exactly one instruction:
on success the pc has moved (by one, or to a branch target); on error the
pc is left where it was and the session stops.

Slots start out empty, which is not the same as zero: reading an empty
slot is an error.

Usage:
  from tinyasm import TinyAsm
  ta = TinyAsm()
  ta.load_source(source_text)
  err = ta.run()
"""

from __future__ import annotations
from typing import Callable, Optional

from asm import Instruction, Program, parse
from isa import OP_ADD, OP_BNE, OP_STR, OP_SUB, SLOT_NAMES

# Upper bound for run(); BNE loops need not terminate.
DEFAULT_MAX_STEPS = 1_000_000

EXAMPLE_PROGRAM = (
    "# Counts to 10 in slot A\n"
    "\n"
    "STR 0 A  # counter\n"
    "STR 10 B # max value of A\n"
    "STR 1 C  # amount we increment A by each loop\n"
    "\n"
    ">loop\n"
    "ADD C A       # add C to A (increment A)\n"
    "BNE A B loop  # (keep looping unless A == B)\n"
)

# ---------------------------------------------------------------------------
#  Errors
# ---------------------------------------------------------------------------

class TinyAsmError(Exception):
    """Base for engine errors raised to the caller."""
    pass

class HaltError(TinyAsmError):
    pass

class StepLimitError(TinyAsmError):
    def __init__(self, steps: int):
        self.steps = steps
        super().__init__(f"Step limit reached after {steps} steps")


class State:
    IDLE            = "idle"       # no program loaded
    READY           = "ready"
    HALTED_COMPLETE = "complete"   # pc == len(program)
    HALTED_ERROR    = "error"

# ---------------------------------------------------------------------------
#  Engine
# ---------------------------------------------------------------------------

class TinyAsm:
    """tinyAsm session: program, label table, slots, pc."""

    def __init__(self, program: Optional[Program] = None):
        self.program: Program = Program()
        self._slots: dict[str, Optional[int]] = dict.fromkeys(SLOT_NAMES)
        self._pc: int = 0
        self.state: str = State.IDLE
        self.error: Optional[str] = None
        self.step_count: int = 0

        # Callbacks
        self.on_step: Optional[Callable[[int, Instruction], None]] = None
        self.on_halt: Optional[Callable[[str], None]] = None

        if program is not None:
            self.load(program)

    # -- Loading --

    def load(self, program: Program):
        """Install `program` and reset all execution state."""
        self.program = program
        self._slots = dict.fromkeys(SLOT_NAMES)
        self._pc = 0
        self.error = None
        self.step_count = 0
        if len(program) == 0:
            self.state = State.HALTED_COMPLETE
        else:
            self.state = State.READY

    def load_source(self, source: str) -> Program:
        """Parse and load. AsmError propagates and leaves the session as it was."""
        program = parse(source)
        self.load(program)
        return program

    def reset(self):
        if self.state == State.IDLE:
            return
        self.load(self.program)

    # -- Read-only views --

    @property
    def pc(self) -> int:
        return self._pc

    @property
    def slots(self) -> dict[str, Optional[int]]:
        return dict(self._slots)

    def slot(self, name: str) -> Optional[int]:
        if name not in self._slots:
            raise ValueError(f"Invalid slot: {name!r}")
        return self._slots[name]

    @property
    def instructions(self) -> tuple[Instruction, ...]:
        return self.program.instructions

    @property
    def labels(self) -> dict[str, int]:
        return dict(self.program.labels)

    @property
    def finished(self) -> bool:
        return self.state == State.HALTED_COMPLETE

    def current(self) -> Optional[Instruction]:
        """The instruction the next step() will execute, if any."""
        if self.state != State.READY:
            return None
        return self.program.instructions[self._pc]

    # =====================================================================
    #  STEP
    # =====================================================================

    def step(self) -> Optional[str]:
        """
        Execute one instruction.  Returns None on success, or an error
        message (pc unchanged, session halted).  Raises HaltError if the
        session is not ready to run.
        """
        if self.state != State.READY:
            raise HaltError(self._not_ready_reason())

        index = self._pc
        instr = self.program.instructions[index]
        err = self._execute(instr)
        self.step_count += 1

        if err:
            self.error = err
            self._halt(State.HALTED_ERROR)
            return err

        if self.on_step:
            self.on_step(index, instr)
        if self._pc == len(self.program):
            self._halt(State.HALTED_COMPLETE)
        return None

    def run(self, max_steps: Optional[int] = None) -> Optional[str]:
        """
        Step until the program completes or fails.  Returns the error
        message, or None on completion.  Raises StepLimitError after
        `max_steps` steps without finishing; the session stays ready.
        """
        limit = DEFAULT_MAX_STEPS if max_steps is None else max_steps
        taken = 0
        while not self.finished:
            if taken >= limit:
                raise StepLimitError(taken)
            err = self.step()
            if err:
                return err
            taken += 1
        return None

    def _halt(self, state: str):
        self.state = state
        if self.on_halt:
            self.on_halt(state)

    def _not_ready_reason(self) -> str:
        if self.state == State.IDLE:
            return "No program loaded"
        if self.state == State.HALTED_ERROR:
            return f"Program stopped on error: {self.error}"
        return "Program has finished"

    # -- Dispatch --

    def _execute(self, instr: Instruction) -> str:
        op, args = instr.op, instr.args
        if   op == OP_ADD: return self._exec_add(*args)
        elif op == OP_SUB: return self._exec_sub(*args)
        elif op == OP_STR: return self._exec_str(*args)
        elif op == OP_BNE: return self._exec_bne(*args)
        raise TinyAsmError(f"Unknown operation {op!r} at index {self._pc}")

    def _empty_slot(self, slot1: str, slot2: str) -> Optional[str]:
        """First of the two slots that has never been written."""
        for s in (slot1, slot2):
            if self._slots[s] is None:
                return s
        return None

    def _exec_add(self, slot1: str, slot2: str) -> str:
        empty = self._empty_slot(slot1, slot2)
        if empty:
            return f"Can't add slot {slot1} to slot {slot2}. Slot {empty} is empty"
        self._slots[slot2] += self._slots[slot1]
        self._pc += 1
        return ""

    def _exec_sub(self, slot1: str, slot2: str) -> str:
        empty = self._empty_slot(slot1, slot2)
        if empty:
            return f"Can't subtract slot {slot1} from slot {slot2}. Slot {empty} is empty"
        self._slots[slot2] -= self._slots[slot1]
        self._pc += 1
        return ""

    def _exec_str(self, number: str, slot: str) -> str:
        self._slots[slot] = int(number, 10)
        self._pc += 1
        return ""

    def _exec_bne(self, slot1: str, slot2: str, label: str) -> str:
        empty = self._empty_slot(slot1, slot2)
        if empty:
            return f"Can't compare slot {slot1} to slot {slot2}. Slot {empty} is empty"
        target = self.program.labels.get(label)
        if target is None:
            return f"Can't jump to label '{label}'. It doesn't exist"
        if self._slots[slot1] == self._slots[slot2]:
            self._pc += 1
        else:
            self._pc = target
        return ""

    # -- Debug / introspection --

    def dump_slots(self) -> str:
        lines = []
        for name in SLOT_NAMES:
            value = self._slots[name]
            lines.append(f"  {name}: {'-' if value is None else value}")
        return "\n".join(lines)
