"""CLI entry points for orcid_pull."""
