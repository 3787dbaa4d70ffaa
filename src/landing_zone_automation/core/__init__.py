"""Core utilities for AWS landing zone automation."""
