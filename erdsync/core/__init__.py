"""
Core Business Logic
==================

Core modules for diagram translation and model synchronization.

Modules:
- dsl: diagram text generation, parsing and relationship resolution
- sync: entity store, debouncing and the text/model sync controller
"""
