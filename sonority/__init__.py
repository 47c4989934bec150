"""
Sonority - a music service that exposes a personal library to networked speakers.

Controllers browse the catalog over a small RPC protocol (paginated containers,
search, favorites) and stream audio over HTTP with byte-range support.
"""

__version__ = "0.1.0"
__author__ = "Sonority Contributors"
__license__ = "GPL-2.0"

from sonority.server import SonorityServer

__all__ = ["SonorityServer", "__version__"]
