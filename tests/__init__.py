"""
Test suite for the hedge formula engine

Contains:
- tests/unit/          : Unit tests for individual modules
"""
