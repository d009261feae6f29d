"""filmcore: AI storyboard and film generation studio."""

__version__ = "0.1.0"
