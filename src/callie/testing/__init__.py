"""Test utilities for callie applications.

::

    from callie.testing import TestClient
"""

from callie.testing.client import TestClient, TestResponse

__all__ = [
    "TestClient",
    "TestResponse",
]
