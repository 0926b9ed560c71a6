"""InkBook — tattoo studio booking core with a best-effort Square mirror."""

__version__ = "0.1.0"
