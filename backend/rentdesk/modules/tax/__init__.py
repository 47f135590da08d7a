"""Tax module."""
