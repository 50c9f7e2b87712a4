"""Regwatch: regulatory compliance monitoring for behavioral-health practices."""

__version__ = "0.1.0"
