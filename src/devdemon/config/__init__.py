"""Configuration — paths, defaults, and settings."""
