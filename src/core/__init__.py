"""
Core domain models, numerical primitives, and JSON contracts.

This module contains the foundational building blocks of the simulation that
are independent of orchestration (turns, governance, trading).
"""
