"""
Logic Flow Engine

Turns trigger/action/condition/loop graphs authored in the visual editor
into either standalone JavaScript event handlers or a live interpreter
bound to the document being edited.
"""

__version__ = "0.1.0"
