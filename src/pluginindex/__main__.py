"""Allow running as `python -m pluginindex`."""

from pluginindex.cli import main

main()
