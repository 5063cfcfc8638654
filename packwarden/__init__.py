"""
PackWarden

Signed distribution and version management for detection content packs.
"""

__version__ = "0.1.0"
