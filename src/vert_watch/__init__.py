"""Vert Watch - vertical jump detection from wrist-worn motion sensors."""

__version__ = "0.1.0"
