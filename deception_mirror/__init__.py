"""Deception Mirror: self-deception risk analysis with a spoken Advocate/Skeptic debate."""

__version__ = "0.1.0"
