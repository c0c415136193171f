"""
Loguru logging gated on the verbosity of the running conversion.

LOG() reads the verbosity of whichever ProgramState the CLI connected to
the current context, so stages and library code never pass it around.
Outside the CLI (the parser, extractor and serializer called directly) the
verbosity comes from ``appsettings.verbosity``.

Usage:
    from seqn.lib.log import LOG, WARN, state_connectToLogger

    # Once, before the stages run:
    state_connectToLogger(state)

    # Anywhere in that context:
    LOG("Parsed 12 top-level nodes", level=2)
    LOG("Balancing '-002T00:60:00'", level=3)
    WARN("Always shown")
"""

from loguru import logger
from typing import Any, Optional
from contextvars import ContextVar
import sys

from ..config import appsettings

_program_state: ContextVar[Optional[Any]] = ContextVar('program_state', default=None)

logger_format = (
    "<green>{time:HH:mm:ss}</green> │ "
    "<level>{level: <7}</level> │ "
    "<cyan>{function: <20}</cyan> @ "
    "<cyan>{line: <4}</cyan> ║ "
    "<level>{message}</level>"
)

logger.remove()
logger.add(sys.stderr, format=logger_format, level="DEBUG")


def state_connectToLogger(state: Any) -> None:
    """
    Make ``state`` the verbosity source for LOG() in the current context.

    Passing None disconnects it and LOG() falls back to the settings.

    Args:
        state: ProgramState (anything with a ``verbosity``), or None
    """
    _program_state.set(state)


def verbosity_get() -> int:
    """Verbosity of the connected state, else the configured default."""
    state = _program_state.get()
    if state is not None and hasattr(state, 'verbosity'):
        return state.verbosity
    return appsettings.verbosity


def LOG(message: str, level: int = 1, **kwargs: Any) -> None:
    """
    Log message if current verbosity allows.

    Args:
        message: Log message to display
        level: Minimum verbosity level required (1=normal, 2=verbose, 3=debug)
        **kwargs: Additional loguru metadata

    Example:
        LOG("Read 42 lines", level=1)
        LOG("Extracted 7 steps", level=2)
        LOG("CST node 'step' at line 12", level=3)
    """
    if verbosity_get() >= level:
        logger.opt(depth=1).debug(message, **kwargs)


def WARN(message: str, **kwargs: Any) -> None:
    """
    Emit a warning regardless of verbosity.

    Used for input that is skipped rather than rejected.
    """
    logger.opt(depth=1).warning(message, **kwargs)
