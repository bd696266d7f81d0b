"""
dist_builder — build, bundle and describe release archives for a cargo workspace.

Pipeline: plan the work graph → run ``cargo build`` → stage executables →
archive each distributable → emit a JSON manifest.
"""

__version__ = "0.1.0"
SCHEMA_VERSION = "0.1"
