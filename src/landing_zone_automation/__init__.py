"""AWS Control Tower landing zone automation."""

__version__ = "1.0.0"
