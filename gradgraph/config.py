from __future__ import annotations

import logging
import os

EVALUATION_STRATEGIES = ("recursive", "iterative")
DEFAULT_EVALUATION = "recursive"


def evaluation_strategy(strategy: str | None = None) -> str:
    """
    Resolves the forward evaluation strategy.

    An explicit `strategy` wins over the `GRADGRAPH_EVALUATION` environment variable,
    which in turn wins over the default (`recursive`).

    Args:
        strategy (str, optional): `"recursive"` or `"iterative"`.

    Returns:
        str: The lower-cased strategy name.
    """
    if strategy is None:
        strategy = os.getenv("GRADGRAPH_EVALUATION", DEFAULT_EVALUATION)
    strategy = strategy.lower()
    if strategy not in EVALUATION_STRATEGIES:
        raise ValueError(
            f"Unknown evaluation strategy: {strategy}, expected one of {EVALUATION_STRATEGIES}"
        )
    return strategy


def log_level() -> int | None:
    """
    Returns the logging level named by `GRADGRAPH_LOG_LEVEL`, or None when unset.
    """
    level_name = os.getenv("GRADGRAPH_LOG_LEVEL")
    if not level_name:
        return None
    level = logging.getLevelName(level_name.upper())
    if not isinstance(level, int):
        raise ValueError(f"Unknown log level: {level_name}")
    return level
