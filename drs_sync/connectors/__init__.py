"""Connectors to external systems (DRS browser, HTTP APIs, Airtable)."""
