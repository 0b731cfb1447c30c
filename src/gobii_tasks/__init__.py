"""Run Gobii browser-use tasks and track them until they finish."""

__version__ = "0.1.0"
