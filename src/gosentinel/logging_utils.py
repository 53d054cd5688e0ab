from __future__ import annotations

import logging
import sys

_PLAIN_FORMAT = "GoSentinel: %(message)s"
_DEBUG_FORMAT = "GoSentinel [%(levelname)s] %(name)s: %(message)s"


def log_level(*, verbose: bool, quiet: bool) -> int:
    if verbose:
        return logging.DEBUG
    if quiet:
        return logging.WARNING
    return logging.INFO


def configure_logging(*, verbose: bool, quiet: bool) -> None:
    """
    Send GoSentinel logs to stderr; stdout is reserved for reports.

    `--verbose` enables debug output tagged with the logger name, `--quiet`
    keeps only warnings and errors.
    """

    level = log_level(verbose=verbose, quiet=quiet)
    fmt = _DEBUG_FORMAT if level == logging.DEBUG else _PLAIN_FORMAT
    logging.basicConfig(level=level, format=fmt, stream=sys.stderr, force=True)
