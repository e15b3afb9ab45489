"""
Card Table - AI Game-Master Table Engine

A rules-agnostic engine that lets a language model run a card table.
The model emits bracketed text commands; the engine:
- Parses them into structured commands
- Validates and applies them to persisted game documents
- Deals cards and generates dungeon maps deterministically
- Stages player actions before they reach the model
"""

__version__ = "0.1.0"
