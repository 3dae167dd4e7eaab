"""
py-punchmap: polygon-based site inspection map engine.
"""

__version__ = "0.1.0"
