"""Salesforce Bulk API v2 upsert/status loaders."""
