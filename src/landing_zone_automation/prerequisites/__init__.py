"""Prerequisite setup required before a landing zone can be created."""
