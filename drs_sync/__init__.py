"""
DRS -> Airtable order sync.

Scrapes (or relays) daily orders from the DRS rental-management site,
normalizes them onto a fixed order schema and upserts them into Airtable.
"""

__version__ = "1.0.0"
