"""
Unit Test Layer Configuration

Pure functions and models, no I/O.

Usage:
    pytest tests/unit -v
"""
import os
import sys

import pytest

# Add project root
sys.path.insert(0, os.path.dirname(os.path.dirname(os.path.dirname(os.path.abspath(__file__)))))


def pytest_collection_modifyitems(config, items):
    """Mark everything under tests/unit as a unit test"""
    layer_dir = os.path.dirname(os.path.abspath(__file__))
    for item in items:
        if str(item.path).startswith(layer_dir):
            item.add_marker(pytest.mark.unit)
