"""
TaskGraph: a hierarchical task and note graph mirrored to Google Drive.
"""

__version__ = "1.0.0"
