"""CleanSource scanner: source fingerprinting and dependency resolution."""

__version__ = "0.3.0"
