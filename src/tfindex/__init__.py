"""
tfindex - build Tinfoil index files from Google Drive folders.
"""

__version__ = "0.3.0"
