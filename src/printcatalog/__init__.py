"""Top-level package for the printcatalog storefront backend and dashboard.

The package keeps catalog entries ("designs" and "bundles") consistent with
their thumbnails, gallery images and downloadable files.
"""

from __future__ import annotations

__all__ = ["__version__"]

__version__ = "0.1.0"
