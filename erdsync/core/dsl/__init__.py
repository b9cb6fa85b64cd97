"""
DSL Processing Module
====================

Translation between the entity model and Mermaid ``erDiagram`` text.

Components:
- notation: header token and crow's foot cardinality symbols
- generator: model to diagram text
- parser: diagram text to model, with recoverable errors
- resolution: strategies linking FK fields to relationship targets
"""
