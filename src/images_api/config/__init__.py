"""
Configuration management for the Images API.

Contains the Pydantic settings object and the cached accessor used by the CLI
and the application factory.
"""
