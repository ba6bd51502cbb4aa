"""Command line entry points for funding and bridging."""
