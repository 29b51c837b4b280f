"""Token-gated file downloads with usage accounting."""

__version__ = "1.0.0"
