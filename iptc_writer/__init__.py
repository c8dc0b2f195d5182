"""
IPTC Title and Keyword Writer Package

This package collects JPEG, PNG and WebP images, optionally asks an AI
service for title and keyword suggestions, and has a metadata service write
IPTC/XMP title and keywords into JPEG copies, saved one by one or bundled
into a ZIP archive.
"""

__version__ = "1.0.0"
