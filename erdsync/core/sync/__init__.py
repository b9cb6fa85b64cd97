"""
Model Synchronization
====================

Keeps the entity model and the diagram text in step while the user edits.

Components:
- store: entity state container mutated through declared operations
- debounce: cancel-and-restart timer on the asyncio event loop
- controller: text edits to model and model changes to text
"""
