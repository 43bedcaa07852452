"""
API routes, mounted under /api/v1.

- leagues: league sync from the provider catalog
- teams: team and player sync per league
- matches: fixture sync per league
- sync: sync health status
"""
