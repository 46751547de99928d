"""DateThinker: date venue discovery, date plans and calendar export."""

__version__ = "1.0.0"
