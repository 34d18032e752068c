"""
Core domain models, decimal primitives, and contracts.

This module contains the foundational building blocks that are independent
of external systems (exchanges, databases, etc.).
"""
