"""
CyDex Intel: threat intelligence feed ingestion.

Fetches RSS/Atom security feeds, parses them tolerantly and turns each entry
into a classified ThreatIntelItem with extracted indicators of compromise.
"""

__version__ = "1.0.0"
