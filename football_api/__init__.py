"""Football Data API: provider sync backend for leagues, teams, players and matches."""

__version__ = "1.0.0"
