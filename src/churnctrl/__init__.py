"""
ChurnCtrl - Ice Cream Churner Control Library

A Python library and console for driving a Bluetooth ice-cream churner:
connection lifecycle, a simulated process loop and an in-memory recipe book.
"""

from .core import __description__, __version__
from .controller import ChurnController
from .display import DisplayManager

__all__ = ["ChurnController", "DisplayManager", "__description__", "__version__"]
