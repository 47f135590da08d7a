"""Expenses module."""
