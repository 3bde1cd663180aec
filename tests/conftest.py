"""
conftest.py — Shared Test Setup
=================================
"""

import pytest
from embedded_node.config import configure_logging


@pytest.fixture(scope="session", autouse=True)
def _logging():
    configure_logging("DEBUG")
