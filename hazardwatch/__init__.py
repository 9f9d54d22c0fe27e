"""
HazardWatch.

Aggregates hazard-event feeds from overlapping upstream queries, classifies
each event into a fixed hazard category, and publishes expiring
per-category snapshots.
"""

__version__ = "0.1.0"
