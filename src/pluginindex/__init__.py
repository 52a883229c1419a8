"""pluginindex - static plugin index builder.

Queries the GitHub releases of every repository registered in a manifest
and publishes the latest eligible release of each as a JSON index and an
HTML listing page.
"""

from pluginindex.constants import VERSION

__version__ = VERSION

__all__ = ["__version__"]
