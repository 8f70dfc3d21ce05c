"""
Build IUPAC-encoded consensus sequences from VCF files
"""
import sys
import logging
from argparse import ArgumentParser, RawDescriptionHelpFormatter

from . import __version__
from .cli import CommandLineError, consensus

logger = logging.getLogger(__name__)

COMMANDS = [consensus]


class HelpfulArgumentParser(ArgumentParser):
    """An ArgumentParser that prints full help on errors."""

    def __init__(self, *args, **kwargs):
        kwargs.setdefault("formatter_class", RawDescriptionHelpFormatter)
        super().__init__(*args, **kwargs)

    def error(self, message):
        self.print_help(sys.stderr)
        self.exit(2, f"{self.prog}: error: {message}\n")


class NiceFormatter(logging.Formatter):
    """
    Do not prefix "INFO:" to info-level log messages (but do it for all other
    levels).
    """

    def format(self, record):
        if record.levelno != logging.INFO:
            record.msg = f"{record.levelname}: {record.msg}"
        return super().format(record)


def setup_logging(debug):
    """
    Set up logging. If debug is True, then DEBUG level messages are printed.
    """
    handler = logging.StreamHandler()
    handler.setFormatter(NiceFormatter())
    root = logging.getLogger()
    root.addHandler(handler)
    root.setLevel(logging.DEBUG if debug else logging.INFO)


def build_parser() -> ArgumentParser:
    parser = HelpfulArgumentParser(description=__doc__, prog="vcfconsensus")
    parser.add_argument("--version", action="version", version="%(prog)s " + __version__)
    parser.add_argument("--debug", action="store_true", default=False, help="Print debug messages")
    subparsers = parser.add_subparsers(dest="command", metavar="COMMAND")
    subparsers.required = True
    for module in COMMANDS:
        name = module.__name__.rsplit(".", maxsplit=1)[1]
        subparser = subparsers.add_parser(
            name, help=module.__doc__.strip().split("\n", maxsplit=1)[0], description=module.__doc__
        )
        module.add_arguments(subparser)
        subparser.set_defaults(module=module, subparser=subparser)
    return parser


def main(argv=None):
    args = build_parser().parse_args(argv)
    setup_logging(args.debug)
    module = args.module
    if hasattr(module, "validate"):
        module.validate(args, args.subparser)
    for name in ("debug", "command", "module", "subparser"):
        delattr(args, name)
    try:
        module.main(args)
    except CommandLineError as e:
        logger.error("vcfconsensus error: %s", str(e))
        logger.debug("Command line error. Traceback:", exc_info=True)
        sys.exit(1)


if __name__ == "__main__":
    main()
