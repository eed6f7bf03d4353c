"""Adapters for the Shopify theme CLI."""
