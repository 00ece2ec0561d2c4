"""
scrollshot - scrolling screen capture and frame stitching.
"""

__version__ = "0.1.0"
