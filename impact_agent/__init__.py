"""Pull request impact analysis agent."""

__version__ = "0.1.0"
