#!/usr/bin/env python3
"""
tinyAsm Runner / Monitor
=========================
Command-line front end for the tinyAsm interpreter.

Provides:
  - Syntax check and numbered listing of a source file
  - Run to completion, optionally tracing every step
  - An interactive monitor: load, step, run, inspect slots / listing

Usage:
  python cli.py PROGRAM.tasm [--check] [--listing] [--trace] [--max-steps N]
  python cli.py --example [--trace]
  python cli.py [PROGRAM.tasm] --monitor

The default step limit for 'run' can also be set with TINYASM_MAX_STEPS.
"""

from __future__ import annotations
import argparse
import cmd
import os
import shlex
import sys
from typing import Optional

from asm import AsmError, Instruction, format_instruction, listing
from tinyasm import (DEFAULT_MAX_STEPS, EXAMPLE_PROGRAM, HaltError, State,
                     StepLimitError, TinyAsm)

EXIT_OK = 0
EXIT_ERROR = 1
EXIT_STEP_LIMIT = 2


def default_max_steps() -> int:
    value = os.environ.get("TINYASM_MAX_STEPS")
    if not value:
        return DEFAULT_MAX_STEPS
    try:
        return int(value)
    except ValueError:
        print(f"Ignoring invalid TINYASM_MAX_STEPS={value!r}", file=sys.stderr)
        return DEFAULT_MAX_STEPS


def warn_redefined(ta: TinyAsm):
    for line, label in ta.program.redefined:
        print(f"[asm] warning: line {line}: label '{label}' redefined",
              file=sys.stderr)


def _trace(index: int, instr: Instruction):
    print(f"[trace] {index}: {format_instruction(instr)}")

# ---------------------------------------------------------------------------
#  Interactive monitor
# ---------------------------------------------------------------------------

class TinyAsmCLI(cmd.Cmd):
    """Interactive monitor for a tinyAsm session."""

    intro = (
        "\n"
        "tinyAsm monitor.  Type 'help' for commands, 'quit' to exit.\n"
    )
    prompt = "tasm> "

    def __init__(self, session: Optional[TinyAsm] = None,
                 max_steps: Optional[int] = None):
        super().__init__()
        self.ta = session if session is not None else TinyAsm()
        self.max_steps = max_steps if max_steps is not None else default_max_steps()
        self.source_path: Optional[str] = None

    def _parse_count(self, arg: str, default: int, usage: str) -> Optional[int]:
        """Positive count from `arg`, `default` if blank; None after printing usage."""
        if not arg.strip():
            return default
        try:
            count = int(arg.strip(), 0)
        except ValueError:
            count = 0
        if count < 1:
            print(f"Usage: {usage}  (count must be a positive integer)")
            return None
        return count

    def _load_text(self, source: str) -> bool:
        try:
            program = self.ta.load_source(source)
        except AsmError as e:
            print(f"Assembly error: {e}")
            return False
        warn_redefined(self.ta)
        print(f"Loaded {len(program)} instructions, "
              f"{len(program.labels)} labels.")
        return True

    def _report_halt(self):
        if self.ta.state == State.HALTED_COMPLETE:
            print(f"Program finished after {self.ta.step_count} steps.")
        elif self.ta.state == State.HALTED_ERROR:
            print(f"Error: {self.ta.error}")

    # ================================================================
    #  Commands
    # ================================================================

    # -- Loading --

    def do_load(self, arg):
        """Load a source file: load <file>"""
        parts = shlex.split(arg)
        if not parts:
            print("Usage: load <file>")
            return
        path = parts[0]
        try:
            with open(path, "r") as f:
                source = f.read()
        except OSError as e:
            print(f"Error reading '{path}': {e}")
            return
        if self._load_text(source):
            self.source_path = path

    def do_example(self, arg):
        """Load the built-in example program (counts to 10 in slot A)."""
        if self._load_text(EXAMPLE_PROGRAM):
            self.source_path = None

    def do_reset(self, arg):
        """Reset pc and slots, keeping the loaded program."""
        self.ta.reset()
        print("Session reset.")

    # -- Execution --

    def do_step(self, arg):
        """Step N instructions: step [count]"""
        count = self._parse_count(arg, 1, "step [count]")
        if count is None:
            return
        for _ in range(count):
            instr = self.ta.current()
            index = self.ta.pc
            try:
                err = self.ta.step()
            except HaltError as e:
                print(f"Cannot step: {e}")
                return
            if err:
                print(f"  {index}: {format_instruction(instr)}")
                self._report_halt()
                return
            print(f"  {index}: {format_instruction(instr)}  -> pc={self.ta.pc}")
            if self.ta.finished:
                self._report_halt()
                return

    def do_run(self, arg):
        """Run to completion or error: run [max_steps]"""
        max_steps = self._parse_count(arg, self.max_steps, "run [max_steps]")
        if max_steps is None:
            return
        try:
            self.ta.run(max_steps)
        except HaltError as e:
            print(f"Cannot run: {e}")
            return
        except StepLimitError as e:
            print(f"Stopped: {e} (pc={self.ta.pc})")
            return
        self._report_halt()

    do_continue = do_run
    do_c = do_run

    # -- Inspection --

    def do_slots(self, arg):
        """Show all ten slots ('-' means empty)."""
        print(self.ta.dump_slots())

    def do_list(self, arg):
        """Show the instruction listing, marking the current instruction."""
        if not self.ta.instructions:
            print("No instructions loaded.")
            return
        for line in listing(self.ta.program, self.ta.pc):
            print(line)

    def do_labels(self, arg):
        """Show the label table."""
        labels = self.ta.labels
        if not labels:
            print("No labels.")
            return
        for name, index in sorted(labels.items(), key=lambda kv: kv[1]):
            print(f"  {name} -> {index}")

    def do_pc(self, arg):
        """Show the program counter."""
        print(f"  pc = {self.ta.pc}")

    def do_status(self, arg):
        """Show session state, pc and step count."""
        src = self.source_path or "(inline)"
        print(f"  source: {src}")
        print(f"  state:  {self.ta.state}")
        print(f"  pc:     {self.ta.pc} / {len(self.ta.instructions)}")
        print(f"  steps:  {self.ta.step_count}")
        if self.ta.error:
            print(f"  error:  {self.ta.error}")

    # -- Misc --

    def do_quit(self, arg):
        """Exit the monitor."""
        print("Goodbye.")
        return True
    do_exit = do_quit
    do_q = do_quit

    def do_EOF(self, arg):
        print()
        return self.do_quit(arg)

    def default(self, line):
        """Handle unknown commands gracefully."""
        print(f"Unknown command: {line.split()[0]!r}. Type 'help' for available commands.")

    def emptyline(self):
        """Don't repeat the last command on empty input."""
        pass

# ---------------------------------------------------------------------------
#  Main
# ---------------------------------------------------------------------------

def run_program(ta: TinyAsm, max_steps: int) -> int:
    try:
        err = ta.run(max_steps)
    except StepLimitError as e:
        print(f"Error: {e} (pc={ta.pc})", file=sys.stderr)
        return EXIT_STEP_LIMIT
    if err:
        print(f"Error: {err}", file=sys.stderr)
        print(ta.dump_slots())
        return EXIT_ERROR
    print(f"Finished after {ta.step_count} steps (pc={ta.pc}).")
    print(ta.dump_slots())
    return EXIT_OK


def main(argv: Optional[list[str]] = None) -> int:
    parser = argparse.ArgumentParser(
        prog="tinyasm",
        description="tinyAsm interpreter",
        formatter_class=argparse.RawDescriptionHelpFormatter,
        epilog="Examples:\n"
               "  python cli.py count.tasm\n"
               "  python cli.py count.tasm --check --listing\n"
               "  python cli.py count.tasm --trace --max-steps 500\n"
               "  python cli.py --example --monitor\n"
    )
    parser.add_argument("source", nargs="?", default=None,
                        help="tinyAsm source file ('-' reads stdin)")
    parser.add_argument("--example", action="store_true",
                        help="Use the built-in example program")
    parser.add_argument("--check", action="store_true",
                        help="Parse only; report errors and exit")
    parser.add_argument("--listing", "-l", action="store_true",
                        help="Print the numbered instruction listing")
    parser.add_argument("--trace", action="store_true",
                        help="Print each instruction as it executes")
    parser.add_argument("--max-steps", type=int, default=None, metavar="N",
                        help=f"Step limit for run (default: $TINYASM_MAX_STEPS "
                             f"or {DEFAULT_MAX_STEPS})")
    parser.add_argument("--monitor", action="store_true",
                        help="Open the interactive monitor after loading")
    args = parser.parse_args(argv)

    max_steps = args.max_steps if args.max_steps is not None else default_max_steps()
    ta = TinyAsm()

    # ---- Load source ---------------------------------------------------
    source = None
    if args.example:
        source = EXAMPLE_PROGRAM
    elif args.source == "-":
        source = sys.stdin.read()
    elif args.source:
        try:
            with open(args.source, "r") as f:
                source = f.read()
        except OSError as e:
            print(f"Error reading '{args.source}': {e}", file=sys.stderr)
            return EXIT_ERROR
    elif not args.monitor:
        parser.error("a source file, --example or --monitor is required")

    if source is not None:
        try:
            ta.load_source(source)
        except AsmError as e:
            print(f"Assembly error: {e}", file=sys.stderr)
            return EXIT_ERROR
        warn_redefined(ta)

    if args.listing:
        for line in listing(ta.program):
            print(line)

    if args.check:
        print(f"OK: {len(ta.instructions)} instructions, {len(ta.labels)} labels.")
        return EXIT_OK

    # ---- Monitor mode --------------------------------------------------
    if args.monitor:
        cli = TinyAsmCLI(ta, max_steps=max_steps)
        cli.source_path = None if args.example else args.source
        try:
            cli.cmdloop()
        except KeyboardInterrupt:
            print("\nInterrupted. Goodbye.")
        return EXIT_OK

    if args.trace:
        ta.on_step = _trace
    return run_program(ta, max_steps)


if __name__ == "__main__":
    sys.exit(main())
