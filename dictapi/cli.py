"""
Dictionary Compiler Command Line Interface
"""

import logging
import sys
from argparse import ArgumentParser
from typing import List, Optional

from dictc.codegen import ResolutionOrder
from dictc.errors import DictError

from .context import Context

logger = logging.getLogger(__name__)


def build_parser() -> ArgumentParser:
    parser = ArgumentParser(prog="dictc", usage="""\
%(prog)s [options] FILE

Compiles a threaded-code dictionary source into interpreter tables.""")

    parser.add_argument("-o", "--outfile", metavar="FILE",
            help="write the generated interpreter source to FILE")
    parser.add_argument("--binary", metavar="FILE",
            help="write the dictionary tables in binary form to FILE")
    parser.add_argument("--listing", action="store_true", default=False,
            help="print a disassembly of the compiled words")
    parser.add_argument("--order", default=ResolutionOrder.SHADOWING.value,
            choices=[order.value for order in ResolutionOrder],
            help="name resolution order when a name is declared twice")
    parser.add_argument("--strict", action="store_true", default=False,
            help="exit with an error status if any diagnostic was reported")
    parser.add_argument("-v", "--verbose", action="store_true", default=False,
            help="print status messages")
    parser.add_argument("--debug", action="store_true", default=False,
            help="print debug messages")
    parser.add_argument("source", metavar="FILE",
            help="dictionary source file path")
    return parser


def main(argv: Optional[List[str]] = None) -> int:
    logging.basicConfig(level=logging.WARNING, format="%(levelname)s: %(message)s")
    options = build_parser().parse_args(argv)

    if options.debug:
        logging.getLogger().setLevel(logging.DEBUG)
    elif options.verbose:
        logging.getLogger().setLevel(logging.INFO)
    else:
        logging.getLogger().setLevel(logging.WARNING)

    ctx = Context(order=options.order)
    try:
        logger.info('reading file "%s"...', options.source)
        build = ctx.compile_file(options.source)
    except OSError as e:
        sys.stderr.write(f"dictc: {options.source}: {e.strerror}\n")
        return 1
    except DictError as e:
        sys.stderr.write(f"dictc: {e}\n")
        return 1

    table = build.table
    logger.info("compiled %d words, %d native, %d variables",
                table.compiled_count, table.native_count, table.variable_count)

    if options.outfile is not None:
        ctx.write(build, options.outfile)
        logger.info('wrote "%s"', options.outfile)

    if options.binary is not None:
        build.save(options.binary)
        logger.info('wrote "%s"', options.binary)

    if options.listing:
        print(build.disassemble())

    if build.diagnostics:
        sys.stderr.write(f"dictc: {len(build.diagnostics)} diagnostic(s)\n")
        if options.strict:
            return 2
    return 0


if __name__ == '__main__':
    sys.exit(main())
