"""
Presenta connector - renders Presenta templates into PDF/PNG/JPEG/WEBP artifacts.
"""

__version__ = "0.1.0"
