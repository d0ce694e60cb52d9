import logging

import pytest

from gradgraph import config


def test_evaluation_strategy_defaults_to_recursive(monkeypatch):
    monkeypatch.delenv("GRADGRAPH_EVALUATION", raising=False)
    assert config.evaluation_strategy() == "recursive"


def test_explicit_strategy_wins_over_environment(monkeypatch):
    monkeypatch.setenv("GRADGRAPH_EVALUATION", "recursive")
    assert config.evaluation_strategy("Iterative") == "iterative"


def test_unknown_strategy_is_rejected():
    with pytest.raises(ValueError):
        config.evaluation_strategy("lazy")


def test_log_level(monkeypatch):
    monkeypatch.delenv("GRADGRAPH_LOG_LEVEL", raising=False)
    assert config.log_level() is None
    monkeypatch.setenv("GRADGRAPH_LOG_LEVEL", "debug")
    assert config.log_level() == logging.DEBUG
    monkeypatch.setenv("GRADGRAPH_LOG_LEVEL", "chatty")
    with pytest.raises(ValueError):
        config.log_level()
