"""Command groups for the buildvault CLI."""
