"""
ER Diagram Sync Engine
======================

Keeps an entity-relationship model and its Mermaid ``erDiagram`` text
continuously synchronized in both directions.

This package provides:
- Pydantic models for entities, fields and foreign-key references
- A deterministic generator from the model to diagram text
- A tolerant, line-oriented parser from diagram text back to the model
- A state container and debounced sync controller for interactive editing
"""

__version__ = "1.0.0"
__author__ = "ERD Sync Team"
