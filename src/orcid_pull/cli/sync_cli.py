#!/usr/bin/env python3
"""CLI entry point for orcid-pull command.

Publishes ORCID publication lists on MediaWiki user pages.
"""

import sys


def main() -> None:
    """Entry point for orcid-pull command."""
    from orcid_pull.sync import main as sync_main

    sys.exit(sync_main())


if __name__ == "__main__":
    main()
