"""bandwatch: live per-prefix bandwidth monitor."""

__version__ = "0.1.0"
