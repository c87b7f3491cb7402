"""Command-line interface for phoneledger."""
