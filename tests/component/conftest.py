"""
Component Test Layer Configuration

Services and the HTTP app against in-memory repositories.

Usage:
    pytest tests/component -v
"""
import os
import sys

import pytest

# Set testing environment BEFORE any imports
os.environ["ENV"] = "testing"
os.environ["ENVIRONMENT"] = "testing"

# Add project root
sys.path.insert(0, os.path.dirname(os.path.dirname(os.path.dirname(os.path.abspath(__file__)))))


def pytest_collection_modifyitems(config, items):
    """Mark everything under tests/component as a component test"""
    layer_dir = os.path.dirname(os.path.abspath(__file__))
    for item in items:
        if str(item.path).startswith(layer_dir):
            item.add_marker(pytest.mark.component)
