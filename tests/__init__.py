"""
Test suite for corpsim-core

Contains:
- tests/unit/          : Unit tests for individual modules (shared engine fixtures in conftest.py)
"""
