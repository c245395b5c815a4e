"""
Shared pytest fixtures and configuration for all tests.
"""

import pytest


@pytest.fixture
def safe_urls():
    """URLs accepted with default options."""
    return [
        "https://example.com/api/v1/users",
        "/api/users/123",
        "image..jpg",
        "//example.com/page",
    ]


@pytest.fixture
def unsafe_urls():
    """URLs rejected with default options."""
    return [
        "../etc/passwd",
        "https://example.com/api\r\n",
        "javascript:alert(1)",
        "https://example.com/api/%252e%252e/secret",
    ]
