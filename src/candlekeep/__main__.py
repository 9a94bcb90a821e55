"""Allow ``python -m candlekeep`` invocation.

This module simply delegates to the CLI error-boundary entry point so
that ``python -m candlekeep`` behaves identically to the ``ck``
console script.
"""

from __future__ import annotations

from candlekeep.cli.app import cli

if __name__ == "__main__":
    cli()
