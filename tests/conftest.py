"""Pytest configuration"""

import pytest


@pytest.fixture
def anyio_backend():
    """Run anyio-marked tests on the asyncio backend only"""
    return "asyncio"
