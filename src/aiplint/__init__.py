"""aiplint - rule-compliance engine for resource-oriented API surfaces."""

__version__ = "0.4.0"
