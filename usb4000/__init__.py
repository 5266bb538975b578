"""This package is a driver for Ocean Optics USB4000 spectrometers"""

__version__ = "1.0.0"   # This is used by pyproject.toml and other pypi things
version = __version__
