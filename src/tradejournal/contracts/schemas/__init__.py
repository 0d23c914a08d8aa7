"""Versioned JSON Schema files loaded with importlib.resources."""
