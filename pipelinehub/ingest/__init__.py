"""Webhook ingestion: authenticate, validate, normalize and persist provider events."""
