"""Test fixtures for objectstore."""
