"""Drive a markdown checklist to completion with an external coding agent."""

__version__ = "0.1.0"
