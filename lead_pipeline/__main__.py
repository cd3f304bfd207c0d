"""``python -m lead_pipeline``: run a pipeline subcommand from the shell."""
from __future__ import annotations

import sys

from . import cli

PROG = "python -m lead_pipeline"


def main(argv: list[str] | None = None) -> int:
    """Dispatch to :func:`lead_pipeline.cli.main`; with no subcommand, print usage and exit 2."""

    args = sys.argv[1:] if argv is None else list(argv)
    if args:
        return cli.main(args)

    cli.build_parser(prog=PROG).print_help()
    return 2


if __name__ == "__main__":  # pragma: no cover - module entry point
    sys.exit(main())
