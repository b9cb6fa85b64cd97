"""
Test Suite
==========

Test suite matching the erdsync/ package structure.

Test Categories:
- unit: Unit tests for individual components
- integration: Round trips across generator, parser and sync controller
"""
