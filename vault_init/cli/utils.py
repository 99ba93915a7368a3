"""Shared utilities for the vault-init CLI."""

import asyncio
from typing import Any, Coroutine, TypeVar

# Exit codes
EXIT_FAILURE = 1
EXIT_CONFIG_ERROR = 2

T = TypeVar("T")


def run_async(coro: Coroutine[Any, Any, T]) -> T:
    """Run async function from sync CLI context."""
    return asyncio.run(coro)
