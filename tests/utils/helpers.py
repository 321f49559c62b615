"""
Test helper functions for common assertions
"""

from datetime import datetime
from typing import Any, Dict, List, Optional


def assert_response_structure(response_data: Dict[str, Any], expected_keys: List[str], optional_keys: Optional[List[str]] = None):
    """Assert that response has expected structure"""
    optional_keys = optional_keys or []

    for key in expected_keys:
        assert key in response_data, f"Required key '{key}' missing from response"

    allowed_keys = set(expected_keys + optional_keys)
    unexpected_keys = set(response_data.keys()) - allowed_keys
    assert not unexpected_keys, f"Unexpected keys in response: {unexpected_keys}"


def assert_utc_timestamp(value: str) -> datetime:
    """Assert an ISO-8601 UTC timestamp with a trailing Z and return it parsed"""
    assert value.endswith("Z"), f"Timestamp {value!r} is not marked as UTC"
    return datetime.fromisoformat(value[:-1])
