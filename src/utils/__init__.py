"""
Utility modules for missing-parent reconciliation

Provides:
- search: Elasticsearch query client, scroll cursors and connection setup
- retry: Retry executor for transient backend failures
- vault_client: HashiCorp Vault integration for secrets management
- metrics: Metrics publishing to Prometheus
- logging: Structured logging setup
- tracing: OpenTelemetry tracing helpers
"""

__version__ = "1.0.0"
__all__ = ["search", "retry", "vault_client", "metrics", "logging", "tracing"]
