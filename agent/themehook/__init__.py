"""Webhook-driven Shopify theme provisioning with Codex coding-agent sessions."""

__version__ = "0.1.0"
