"""Configuration loading utilities."""
