"""
Core domain models, money arithmetic, and the commission engine.

This module contains the foundational building blocks that are independent
of external systems (rate feeds, storage, etc.).
"""
