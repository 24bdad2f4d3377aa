"""
Connection setup for the Elasticsearch query client.

Builds a requests Session with basic authentication, TLS trust settings
and timeouts, then waits for the cluster to answer a health request before
handing out the client.

Usage:
    from utils.search.connector import ElasticsearchConnector, ElasticsearchSettings

    connector = ElasticsearchConnector(ElasticsearchSettings.from_env())
    client = connector.create_client()
    ...
    connector.shutdown()
"""

import logging
import os
from dataclasses import dataclass, field
from urllib.parse import urlparse

import requests
from requests.adapters import HTTPAdapter

from utils.retry import RetryOperation, RetryPolicy

from .client import ElasticsearchQueryClient
from .errors import BackendUnavailable

logger = logging.getLogger(__name__)

HEALTH_CHECK_ATTEMPTS = 10
HEALTH_CHECK_DELAY_SECONDS = 3.0


def _env_flag(name: str, default: bool) -> bool:
    value = os.getenv(name)
    if value is None:
        return default
    return value.lower() in ("true", "1", "yes")


def _env_float(name: str) -> float | None:
    value = os.getenv(name)
    if not value:
        return None
    try:
        return float(value)
    except ValueError as e:
        raise ValueError(f"{name} must be a number of seconds, got '{value}'") from e


@dataclass
class SslSettings:
    """TLS trust configuration"""

    certificate_path: str | None = None
    verify_hostname: bool = True
    self_signed: bool = False


@dataclass
class ElasticsearchSettings:
    """
    Connection settings for the search cluster

    Attributes:
        url: Cluster URL
        username: Basic auth user (auth is skipped when empty)
        password: Basic auth password (auth is skipped when empty)
        cluster_name: Expected cluster name, used in log messages
        connect_timeout: Connect timeout in seconds
        socket_timeout: Read timeout in seconds
        ssl: TLS settings, None for plain HTTP defaults
    """

    url: str = "http://localhost:9200"
    username: str | None = None
    password: str | None = None
    cluster_name: str = "elasticsearch"
    connect_timeout: float | None = None
    socket_timeout: float | None = None
    ssl: SslSettings | None = field(default=None)

    @classmethod
    def from_env(cls) -> "ElasticsearchSettings":
        """
        Build settings from environment variables

        Environment variables:
            ELASTICSEARCH_URL: Cluster URL (default: http://localhost:9200)
            ELASTICSEARCH_USERNAME / ELASTICSEARCH_PASSWORD: Basic auth
            ELASTICSEARCH_CLUSTER_NAME: Cluster name (default: elasticsearch)
            ELASTICSEARCH_CONNECT_TIMEOUT / ELASTICSEARCH_SOCKET_TIMEOUT: Seconds
            ELASTICSEARCH_SSL_CERTIFICATE_PATH: PEM file of the server certificate
            ELASTICSEARCH_SSL_VERIFY_HOSTNAME: Verify hostnames (default: true)
            ELASTICSEARCH_SSL_SELF_SIGNED: Trust self-signed certificates (default: false)
        """
        certificate_path = os.getenv("ELASTICSEARCH_SSL_CERTIFICATE_PATH")
        verify_hostname = _env_flag("ELASTICSEARCH_SSL_VERIFY_HOSTNAME", True)
        self_signed = _env_flag("ELASTICSEARCH_SSL_SELF_SIGNED", False)

        ssl = None
        if certificate_path or self_signed or not verify_hostname:
            ssl = SslSettings(
                certificate_path=certificate_path,
                verify_hostname=verify_hostname,
                self_signed=self_signed,
            )

        return cls(
            url=os.getenv("ELASTICSEARCH_URL", "http://localhost:9200"),
            username=os.getenv("ELASTICSEARCH_USERNAME"),
            password=os.getenv("ELASTICSEARCH_PASSWORD"),
            cluster_name=os.getenv("ELASTICSEARCH_CLUSTER_NAME", "elasticsearch"),
            connect_timeout=_env_float("ELASTICSEARCH_CONNECT_TIMEOUT"),
            socket_timeout=_env_float("ELASTICSEARCH_SOCKET_TIMEOUT"),
            ssl=ssl,
        )


class HostnameIgnoringAdapter(HTTPAdapter):
    """HTTPS adapter that checks the certificate chain but not the hostname."""

    def init_poolmanager(self, *args, **kwargs):
        kwargs["assert_hostname"] = False
        return super().init_poolmanager(*args, **kwargs)


def validate_url(url: str) -> str:
    """
    Check that a cluster URL has a scheme and a host

    Raises:
        ValueError: If the URL cannot be used
    """
    parsed = urlparse(url or "")
    if parsed.scheme not in ("http", "https") or not parsed.hostname:
        raise ValueError(f"Error in url: {url}")
    return url


class ElasticsearchConnector:
    """
    Creates query clients and checks cluster health

    One connector owns at most one client session at a time.
    """

    def __init__(
        self,
        settings: ElasticsearchSettings,
        health_check_attempts: int = HEALTH_CHECK_ATTEMPTS,
        health_check_delay: float = HEALTH_CHECK_DELAY_SECONDS,
    ):
        self.settings = settings
        self.health_check_attempts = health_check_attempts
        self.health_check_delay = health_check_delay
        self.client: ElasticsearchQueryClient | None = None
        self._shutdown = False

    def _setup_authentication(self, session: requests.Session) -> None:
        username = self.settings.username
        password = self.settings.password

        if not username or not password:
            logger.warning(
                "Username and/or password are empty. "
                "Basic authentication for elasticsearch is not used."
            )
            return
        session.auth = (username, password)

    def _setup_ssl(self, session: requests.Session) -> None:
        ssl = self.settings.ssl
        if ssl is None:
            return

        if ssl.certificate_path:
            if not os.path.isfile(ssl.certificate_path):
                raise ValueError(
                    "Could not load configured server certificate for the secured "
                    f"Elasticsearch connection: {ssl.certificate_path}"
                )
            if os.path.getsize(ssl.certificate_path) == 0:
                raise ValueError(
                    "Could not load certificate from file, file is empty. "
                    f"File: {ssl.certificate_path}"
                )
            session.verify = ssl.certificate_path
            logger.debug(f"Using server certificate {ssl.certificate_path}")
        elif ssl.self_signed:
            logger.warning(
                "Self-signed certificates expected but no server certificate is "
                "configured; verifying against the default trust store"
            )

        if not ssl.verify_hostname:
            session.mount("https://", HostnameIgnoringAdapter())

    def _timeout(self) -> tuple[float | None, float | None] | None:
        if self.settings.connect_timeout is None and self.settings.socket_timeout is None:
            return None
        return (self.settings.connect_timeout, self.settings.socket_timeout)

    def create_client(self) -> ElasticsearchQueryClient:
        """
        Create a query client and wait for the cluster

        Returns:
            Configured ElasticsearchQueryClient

        Raises:
            ValueError: If the URL or certificate settings are invalid
            BackendUnavailable: If the cluster kept failing during the health check
        """
        logger.debug("Creating Elasticsearch connection...")
        url = validate_url(self.settings.url)

        session = requests.Session()
        self._setup_authentication(session)
        self._setup_ssl(session)

        client = ElasticsearchQueryClient(url, session=session, timeout=self._timeout())
        self.client = client

        if not self.check_health(client):
            logger.warning("Elasticsearch cluster is not accessible")
        else:
            logger.debug("Elasticsearch connection was successfully created.")
        return client

    def check_health(self, client: ElasticsearchQueryClient) -> bool:
        """
        Wait until the cluster answers a health request

        Retries unreachable-cluster failures and unhealthy answers with a
        fixed delay until the attempt budget is spent or the connector is
        shut down. A rejected request (QueryError) is raised immediately.

        Returns:
            True if the cluster reported a cluster name

        Raises:
            BackendUnavailable: If the cluster stayed unreachable
            QueryError: If the cluster rejected the health request
        """
        def cluster_answers() -> bool:
            health = client.cluster_health()
            return bool(health.get("cluster_name"))

        policy = RetryPolicy(
            max_attempts=self.health_check_attempts,
            retry_on=(BackendUnavailable,),
            accept_result=lambda healthy: healthy or self._shutdown,
            delay=self.health_check_delay,
            message=(
                f"Connect to Elasticsearch cluster [{self.settings.cluster_name}] "
                f"at {self.settings.url}"
            ),
        )

        try:
            return RetryOperation(cluster_answers, policy).retry()
        except BackendUnavailable as e:
            raise BackendUnavailable("Couldn't connect to Elasticsearch. Abort.") from e

    def shutdown(self) -> None:
        """Stop pending health checks and close the client session."""
        self._shutdown = True
        if self.client is not None:
            try:
                self.client.close()
            except Exception as e:
                logger.error(f"Could not close Elasticsearch client: {e}")
            self.client = None
