"""
Settings resolution for the CLI.

Command-line flags win over environment variables, which win over the
defaults. Cluster credentials can also come from Vault.
"""

import argparse
import logging
import os

from reconciliation.engine import ScanSettings
from utils.search import ElasticsearchSettings, SslSettings
from utils.vault_client import VaultClient

logger = logging.getLogger(__name__)


def _int_setting(value: int | None, env_var: str, label: str) -> int:
    if value is not None:
        return value

    raw = os.getenv(env_var)
    if raw is None or raw == "":
        raise ValueError(f"{label} is required (--{label.replace(' ', '-')} or {env_var})")
    try:
        return int(raw)
    except ValueError as e:
        raise ValueError(f"{env_var} must be an integer, got '{raw}'") from e


def build_scan_settings(args: argparse.Namespace) -> ScanSettings:
    """
    Build scan settings from parsed arguments and the environment

    Raises:
        ValueError: If partition id or import position are missing or invalid
    """
    return ScanSettings(
        partition_id=_int_setting(args.partition_id, "OPERATE_PARTITION_ID", "partition id"),
        import_position=_int_setting(
            args.import_position, "OPERATE_IMPORT_POSITION", "import position"
        ),
        record_indices=args.record_indices,
        parent_indices=args.parent_indices,
        page_size=args.page_size,
        check_page_size=args.check_page_size,
        keep_alive_ms=args.keep_alive_ms,
        count_first=not args.no_count,
    )


def build_search_settings(args: argparse.Namespace) -> ElasticsearchSettings:
    """
    Build connection settings from the environment, flags and Vault

    Raises:
        ValueError: If Vault is requested but not configured or the secret is invalid
    """
    settings = ElasticsearchSettings.from_env()

    if args.es_url:
        settings.url = args.es_url

    if args.use_vault:
        vault_client = VaultClient()
        credentials = vault_client.get_search_credentials(args.vault_path)
        settings.username = credentials["username"]
        settings.password = credentials["password"]
        if credentials.get("url") and not args.es_url:
            settings.url = credentials["url"]

    if args.es_username:
        settings.username = args.es_username
    if args.es_password:
        settings.password = args.es_password

    if args.es_certificate or args.es_self_signed or args.es_no_verify_hostname:
        ssl = settings.ssl or SslSettings()
        if args.es_certificate:
            ssl.certificate_path = args.es_certificate
        if args.es_self_signed:
            ssl.self_signed = True
        if args.es_no_verify_hostname:
            ssl.verify_hostname = False
        settings.ssl = ssl

    logger.debug(f"Resolved Elasticsearch url: {settings.url}")
    return settings
