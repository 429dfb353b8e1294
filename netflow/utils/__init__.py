"""Shared helpers: exceptions, validation, log masking."""
