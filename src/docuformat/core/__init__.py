"""Shared infrastructure: errors, logging, configuration and content models."""
