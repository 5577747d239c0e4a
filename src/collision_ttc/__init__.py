"""
Camera/range sensor fusion core for per-object time-to-collision estimation.
"""

__version__ = '0.1.0'
