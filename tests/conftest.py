"""Shared pytest fixtures and configuration for pytest."""

import logging

import pytest

from rpcwire.rpc.bootstrap import LOGGER_NAMESPACE


@pytest.fixture
def restore_logger():
    """Undo configure_logging() so later tests still propagate to caplog."""
    rpc_logger = logging.getLogger(LOGGER_NAMESPACE)
    saved = (rpc_logger.level, list(rpc_logger.handlers), rpc_logger.propagate)
    yield rpc_logger
    for handler in rpc_logger.handlers:
        if handler not in saved[1]:
            handler.close()
    rpc_logger.setLevel(saved[0])
    rpc_logger.handlers[:] = saved[1]
    rpc_logger.propagate = saved[2]
