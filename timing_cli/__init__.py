"""
Timing CLI - Three-layer architecture for the Timing web API.

Layers:
- core: Raw types and async HTTP client
- sdk: High-level TimingClient with nice ergonomics
- cli: Opinionated command-line interface
"""

from timing_cli.sdk import TimingClient

__version__ = "0.1.0"
__all__ = ["TimingClient"]
