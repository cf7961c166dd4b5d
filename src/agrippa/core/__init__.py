"""Sync engine: schema, workspace stores, classification, backups and upsync."""
