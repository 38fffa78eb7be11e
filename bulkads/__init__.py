"""
Bulk Ad Creator.

This package turns one ad template and a list of uploaded media files into a
campaign, an ad set and one ad per media file on the Facebook Marketing API.
"""

__version__ = "1.0.0"
