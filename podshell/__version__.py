"""Version information for podshell"""

__version__ = "0.3.0"
