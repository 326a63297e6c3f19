"""
tidal-cli: a self-healing TIDAL session and a bounded cache of transcoded tracks.
"""

__version__ = "0.1.0"
