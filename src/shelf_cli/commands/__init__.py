"""Command groups for the shelf CLI."""
