"""Command-line entry points: init, poll, serve, api."""
