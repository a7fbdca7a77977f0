"""PicoArt style-transfer backend."""

__version__ = "0.1.0"
