"""
Shared fixtures for cart tests
"""
import pytest

from sessioncart.config import Config
from sessioncart.service import CartService


@pytest.fixture
def memory_config():
    """Config using the in-memory driver with throttling disabled"""
    return Config(default="memory", write_throttle_wait=0, read_throttle_wait=0)


@pytest.fixture
def cart(memory_config):
    """Cart service over a fresh in-memory storage"""
    return CartService("user-1", memory_config)
