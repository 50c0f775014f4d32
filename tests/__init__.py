"""
Test suite for the checkout pricing and stock-validation engine

Contains:
- tests/unit/          : Unit tests for individual modules
"""
