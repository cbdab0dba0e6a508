"""Community-health statistics for the scverse organization."""

__version__ = "0.1.0"
