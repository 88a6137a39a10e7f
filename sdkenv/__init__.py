"""
sdkenv - environment and engine cache manager for a versioned app SDK.

Environments are named SDK installations pinned to an engine version. The
large engine artifact is downloaded once into a shared cache and reused by
every environment that references the same version.
"""

__version__ = "0.1.0"
