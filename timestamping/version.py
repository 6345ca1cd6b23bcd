"""
timestamping.version: package version and the logic/schema versions it ships.
"""

from __future__ import annotations

__version__ = "0.3.0"

#: Version id of the newest registry logic bundled in this package.
LOGIC_VERSION = 1

#: Storage schema understood by the bundled logic.
SCHEMA_VERSION = 1

__all__ = ["__version__", "LOGIC_VERSION", "SCHEMA_VERSION"]
