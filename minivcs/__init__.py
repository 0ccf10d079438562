"""
minivcs - a minimal version-control core.

Content-addressed blob storage, immutable version snapshots, an LCS-based
line diff, and a similarity-scored merge/conflict-resolution engine.
"""

__version__ = "0.1.0"

# Configuration is available at top level for convenience
from minivcs.config import config

__all__ = ["config", "__version__"]
