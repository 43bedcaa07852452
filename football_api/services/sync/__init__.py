"""
Football Data Sync Service

Provides the synchronization layer between the football data provider and the
local leagues/teams/players/matches tables.

Key components:
- Client: Fetch provider records with retries
- Mappers: Translate provider records into table rows
- Dedupe / Resolver: Collapse duplicates, resolve team references
- Reconciler: Bulk upsert per entity batch
- Orchestrator: Coordinate sync jobs and monitoring
"""
