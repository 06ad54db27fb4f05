"""Client CLI for a deployed media gateway.

Requests presigned R2 URLs and Stream direct uploads, then performs the
transfer with them. Results are printed as JSON.
"""

__all__ = ["__version__"]

__version__ = "0.1.0"
