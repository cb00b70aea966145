"""Configuration, logging and performance utilities."""
