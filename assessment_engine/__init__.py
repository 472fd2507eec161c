"""
Assessment lifecycle engine.

Turns an uploaded document into a graded, securely-delivered quiz:
generation orchestration, single-use access tokens and negative-marking scoring.
"""

__version__ = "1.0.0"
