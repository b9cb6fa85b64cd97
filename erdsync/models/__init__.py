"""
Data Models
===========

Pydantic data models for the entity graph and parser results.

Models:
- schemas: entities, fields, FK references, parse results and change events
"""
