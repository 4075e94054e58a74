"""Aggregate metrics over batches of games."""
