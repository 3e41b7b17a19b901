"""
Lifecycle - Terminal action.

The terminator is the single externally observable effect of the supervisor:
it runs once, after the hook has been told about termination, and decides
how the process exits. Production wiring exits non-zero on error; tests
inject a recorder instead.
"""
from __future__ import annotations

import logging
from typing import Callable, Optional

logger = logging.getLogger("lifecycle.termination")

Terminator = Callable[[Optional[BaseException]], None]


def exit_on_error(exit_code: int = 1) -> Terminator:
    """
    Build the production terminator.

    A non-None error is logged and turned into ``SystemExit(exit_code)``;
    None returns normally so the caller's entry point exits cleanly.
    """

    def terminate(error: Optional[BaseException]) -> None:
        if error is None:
            return
        logger.critical(f"Application terminated with error: {error}", exc_info=error)
        raise SystemExit(exit_code)

    return terminate


__all__ = ["Terminator", "exit_on_error"]
