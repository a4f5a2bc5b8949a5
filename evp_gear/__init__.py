"""EVP-Gear: backpacking gear inventory and pack planner."""

__version__ = "0.1.0"
