"""issuebot - agent memory management for automated issue resolution."""

__version__ = "0.1.0"
