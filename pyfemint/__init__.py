"""pyfemint: element-local bilinear form integrators."""
__version__ = "0.1.0"
