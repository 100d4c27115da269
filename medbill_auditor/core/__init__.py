"""Configuration, exceptions, logging and observability helpers."""
