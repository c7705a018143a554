"""Exceptions raised while building alert generators."""

from __future__ import annotations


class GeneratorError(Exception):
    """Base exception for alert generation errors."""


class DistributionError(GeneratorError, ValueError):
    """A weighted distribution string is malformed or does not sum to 100."""
