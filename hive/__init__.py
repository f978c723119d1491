"""hive: coordination core for concurrent coding agents."""

__version__ = "0.3.0"
