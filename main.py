#!/usr/bin/env python3
"""BitCPU Command Line Interface.

Assemble and run programs on the bit-level CPU emulator.

Usage:
    python main.py --program programs/add.asm
    python main.py --inline "MOV %0, #6; MUL %0, #7; OUT %0; HLT" --trace
"""

import argparse
import logging
import sys
from pathlib import Path

# Add src to path
sys.path.insert(0, str(Path(__file__).parent / "src"))

from rich.console import Console
from rich.logging import RichHandler
from rich.table import Table

from bitcpu import CPU, Architecture, CPUEvents, ConfigurationError, disassemble
from bitcpu.codec import bits_to_int, bits_to_str

console = Console()


def setup_logging(verbose: bool, quiet: bool) -> None:
    """Route library logging through rich; WARNING and up by default."""
    level = logging.WARNING
    if verbose:
        level = logging.DEBUG
    elif quiet:
        level = logging.ERROR
    logging.basicConfig(
        level=level,
        format="%(message)s",
        datefmt="[%X]",
        handlers=[RichHandler(show_path=False, markup=False, rich_tracebacks=True)],
    )


def register_table(cpu: CPU) -> Table:
    table = Table(title="Registers")
    table.add_column("Reg", justify="right")
    table.add_column("Bits")
    table.add_column("Value", justify="right")
    for index in range(cpu.arch.register_count):
        bits = cpu.get_register(index)
        table.add_row(f"%{index}", bits_to_str(bits), str(bits_to_int(bits)))
    return table


def main():
    parser = argparse.ArgumentParser(
        description="BitCPU: Bit-Level CPU Emulator",
        formatter_class=argparse.RawDescriptionHelpFormatter,
        epilog="""
Examples:
    # Run a program file on the default 8-bit machine
    python main.py --program programs/add.asm

    # Run inline assembly with a full trace
    python main.py --inline "MOV %0, #5; ADD %0, #3; OUT %0; HLT" --trace

    # 16-bit machine with 8 registers
    python main.py --program programs/loop.asm --bits 16 --registers 8

    # Show the assembled program instead of running it
    python main.py --program programs/add.asm --disassemble
        """
    )

    parser.add_argument(
        "--program", "-p",
        type=str,
        help="Path to assembly program file (.asm)"
    )
    parser.add_argument(
        "--inline", "-i",
        type=str,
        help="Inline assembly (separate instructions with ;)"
    )
    parser.add_argument(
        "--bits", "-b",
        type=int,
        default=8,
        help="Byte width in bits. Default: 8"
    )
    parser.add_argument(
        "--registers", "-r",
        type=int,
        default=4,
        help="Number of registers. Default: 4"
    )
    parser.add_argument(
        "--ram",
        type=int,
        default=256,
        help="RAM size in bytes. Default: 256"
    )
    parser.add_argument(
        "--start",
        type=int,
        default=0,
        help="Load and start address. Default: 0"
    )
    parser.add_argument(
        "--max-steps",
        type=int,
        default=CPU.STEP_LIMIT,
        help=f"Maximum execution steps (safety limit). Default: {CPU.STEP_LIMIT}"
    )
    parser.add_argument(
        "--trace", "-t",
        action="store_true",
        help="Print full execution trace"
    )
    parser.add_argument(
        "--disassemble", "-d",
        action="store_true",
        help="Print the assembled program and exit"
    )
    parser.add_argument(
        "--quiet", "-q",
        action="store_true",
        help="Minimal output (OUT values only)"
    )
    parser.add_argument(
        "--verbose", "-v",
        action="store_true",
        help="Log every step"
    )

    args = parser.parse_args()

    # Validate arguments
    if not args.program and not args.inline:
        parser.error("Either --program or --inline is required")

    setup_logging(args.verbose, args.quiet)

    try:
        arch = Architecture(bits=args.bits, register_count=args.registers, ram_bytes=args.ram)
    except ConfigurationError as e:
        parser.error(str(e))

    # Load program
    if args.program:
        program_path = Path(args.program)
        if not program_path.exists():
            console.print(f"[red]Error:[/red] Program file not found: {args.program}")
            return 1
        source = program_path.read_text()
    else:
        # Inline assembly
        source = args.inline.replace(";", "\n")

    events = CPUEvents(
        on_output=lambda value: console.print(
            f"OUT {bits_to_int(value):>6}  {bits_to_str(value)}"
        ),
    )
    cpu = CPU(arch, max_steps=args.max_steps, trace=args.trace, events=events)
    program = cpu.load_source(source, address=args.start)

    if args.disassemble:
        for index, decoded in enumerate(disassemble(program, arch.bits)):
            console.print(f"{args.start + 3 * index:>5}  {decoded.text}")
        return 0 if not cpu.assembler.errors else 1

    if not args.quiet:
        console.rule("Executing")

    cpu.run(start_address=args.start)

    # Output
    if args.trace:
        console.print(cpu.format_trace(), markup=False)

    if not args.quiet:
        summary = cpu.get_summary()
        console.rule()
        console.print(register_table(cpu))
        console.print(f"Steps: {summary['steps']}")
        console.print(f"Flags: {summary['flags']}")
        if summary['errors']:
            console.print(f"[red]Errors:[/red] {len(summary['errors'])}")
            for message in summary['errors']:
                console.print(f"  {message}", markup=False)

    # Exit code reflects whether anything went wrong
    return 0 if not cpu.errors else 1


if __name__ == "__main__":
    sys.exit(main())
