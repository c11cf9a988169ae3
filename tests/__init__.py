"""
Test suite for Smart Exchange Desk

Contains:
- tests/unit/          : Unit tests for individual modules
"""
