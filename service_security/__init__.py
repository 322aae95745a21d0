"""Security decision service."""
