"""
Team-based staff authorization engine.
"""

__version__ = "1.0.0"
