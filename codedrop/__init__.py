"""CodeDrop - share files behind short access codes."""

__version__ = "1.0.0"
