"""
Framework layer: configuration pipeline, hot reload and change events.
"""

from .events import ChangeEvent, ChangeEventType, ChangeNotifier

__all__ = ["ChangeEvent", "ChangeEventType", "ChangeNotifier"]
