"""Configuration building blocks: change events, value casting, a command-line source, options and a config-center client."""

__version__ = "0.1.0"

__all__ = ["cast", "cli", "configcenter", "event", "options", "serializers"]