"""
HashiCorp Vault client for fetching search cluster credentials

Reads the Elasticsearch username and password from the KV v2 secrets
engine so they do not have to be passed on the command line.
"""

import os
import re
import logging
from typing import Any, Dict, Optional

import requests


logger = logging.getLogger(__name__)

DEFAULT_SECRET_PATH = "secret/elasticsearch"
_SAFE_PATH = re.compile(r'^[a-zA-Z0-9/_-]+$')


class VaultClient:
    """
    HashiCorp Vault client for secrets management (KV v2)
    """

    def __init__(
        self,
        vault_addr: Optional[str] = None,
        vault_token: Optional[str] = None,
        namespace: Optional[str] = None,
        timeout: float = 10.0,
    ):
        """
        Initialize Vault client

        Args:
            vault_addr: Vault server address (default: from VAULT_ADDR env var)
            vault_token: Vault authentication token (default: from VAULT_TOKEN env var)
            namespace: Vault namespace (optional, for Vault Enterprise)
            timeout: Request timeout in seconds

        Raises:
            ValueError: If vault_addr or vault_token are not provided
        """
        self.vault_addr = vault_addr or os.getenv("VAULT_ADDR")
        self.vault_token = vault_token or os.getenv("VAULT_TOKEN")
        self.namespace = namespace or os.getenv("VAULT_NAMESPACE")
        self.timeout = timeout

        if not self.vault_addr:
            raise ValueError(
                "Vault address not provided. Set VAULT_ADDR environment variable "
                "or pass vault_addr parameter."
            )

        if not self.vault_token:
            raise ValueError(
                "Vault token not provided. Set VAULT_TOKEN environment variable "
                "or pass vault_token parameter."
            )

        self.vault_addr = self.vault_addr.rstrip("/")
        self.headers = {"X-Vault-Token": self.vault_token}
        if self.namespace:
            self.headers["X-Vault-Namespace"] = self.namespace

        logger.debug(f"Initialized Vault client for {self.vault_addr}")

    @staticmethod
    def _kv2_path(secret_path: str) -> str:
        if not secret_path or not isinstance(secret_path, str):
            raise ValueError("secret_path must be a non-empty string")

        if '..' in secret_path or secret_path.startswith('/'):
            raise ValueError(
                f"Invalid secret_path: {secret_path}. "
                "Path traversal attempts are not allowed."
            )

        if not _SAFE_PATH.match(secret_path):
            raise ValueError(
                f"Invalid secret_path: {secret_path}. "
                "Only alphanumeric characters, slashes, underscores, and hyphens are allowed."
            )

        if "/data/" in secret_path:
            return secret_path

        mount, _, rest = secret_path.partition("/")
        return f"{mount}/data/{rest}" if rest else f"{mount}/data"

    def get_secret(self, secret_path: str) -> Dict[str, Any]:
        """
        Fetch secret data from the KV v2 engine

        Args:
            secret_path: Path to secret (e.g., "secret/elasticsearch")

        Returns:
            Dictionary containing secret data

        Raises:
            ValueError: If the path is invalid or holds no data
            requests.RequestException: If the Vault request fails
        """
        kv_path = self._kv2_path(secret_path)
        url = f"{self.vault_addr}/v1/{kv_path}"

        logger.debug(f"Fetching secret from: {url}")
        response = requests.get(url, headers=self.headers, timeout=self.timeout)

        if response.status_code == 404:
            raise ValueError(f"Secret not found at path: {secret_path}")
        response.raise_for_status()

        secret_data = response.json().get("data", {}).get("data", {})
        if not secret_data:
            raise ValueError(f"No data found in secret at path: {secret_path}")

        return secret_data

    def get_search_credentials(self, secret_path: str = DEFAULT_SECRET_PATH) -> Dict[str, Any]:
        """
        Fetch search cluster credentials

        The secret must contain 'username' and 'password'; 'url' is optional.

        Raises:
            ValueError: If required fields are missing
        """
        secret_data = self.get_secret(secret_path)

        missing_fields = [f for f in ("username", "password") if not secret_data.get(f)]
        if missing_fields:
            raise ValueError(
                f"Missing required fields in secret: {', '.join(missing_fields)}"
            )

        logger.info(f"Fetched search credentials from Vault ({secret_path})")
        return secret_data

    def health_check(self) -> bool:
        """
        Check if Vault is accessible and unsealed

        Returns:
            True if Vault is healthy, False otherwise
        """
        url = f"{self.vault_addr}/v1/sys/health"

        try:
            response = requests.get(url, timeout=5)
        except requests.RequestException as e:
            logger.error(f"Vault health check failed: {e}")
            return False

        # 200 active, 429 standby, 472 DR secondary, 473 performance standby
        return response.status_code in (200, 429, 472, 473)
