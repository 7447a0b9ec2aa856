"""Node-graph scripting substrate for text adventure game logic."""

__version__ = "0.1.0"
