"""Validator secrets manager backed by a remote KMS signing service."""

__version__ = "0.1.0"
