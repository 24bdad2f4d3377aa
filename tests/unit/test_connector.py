"""
Unit tests for connection setup and cluster health checks
"""

import pytest
from unittest.mock import MagicMock, Mock, patch

from utils.search import BackendUnavailable, ElasticsearchSettings, QueryError, SslSettings
from utils.search.connector import (
    ElasticsearchConnector,
    HostnameIgnoringAdapter,
    validate_url,
)


def _healthy_client(cluster_name: str = "elasticsearch") -> Mock:
    client = Mock()
    client.cluster_health.return_value = {"cluster_name": cluster_name, "status": "green"}
    return client


class TestSettings:
    """Test settings from the environment"""

    def test_defaults(self):
        settings = ElasticsearchSettings.from_env()

        assert settings.url == "http://localhost:9200"
        assert settings.username is None
        assert settings.cluster_name == "elasticsearch"
        assert settings.ssl is None

    def test_from_env(self, monkeypatch):
        monkeypatch.setenv("ELASTICSEARCH_URL", "https://es.example.com:9200")
        monkeypatch.setenv("ELASTICSEARCH_USERNAME", "elastic")
        monkeypatch.setenv("ELASTICSEARCH_PASSWORD", "changeme")
        monkeypatch.setenv("ELASTICSEARCH_SOCKET_TIMEOUT", "30")
        monkeypatch.setenv("ELASTICSEARCH_SSL_SELF_SIGNED", "true")

        settings = ElasticsearchSettings.from_env()

        assert settings.url == "https://es.example.com:9200"
        assert settings.username == "elastic"
        assert settings.password == "changeme"
        assert settings.socket_timeout == 30.0
        assert settings.ssl == SslSettings(self_signed=True)

    def test_invalid_timeout(self, monkeypatch):
        monkeypatch.setenv("ELASTICSEARCH_CONNECT_TIMEOUT", "soon")

        with pytest.raises(ValueError, match="ELASTICSEARCH_CONNECT_TIMEOUT"):
            ElasticsearchSettings.from_env()


class TestValidateUrl:

    @pytest.mark.parametrize("url", ["http://localhost:9200", "https://es:9243/"])
    def test_valid(self, url):
        assert validate_url(url) == url

    @pytest.mark.parametrize("url", ["", "localhost:9200", "ftp://es", "http://"])
    def test_invalid(self, url):
        with pytest.raises(ValueError, match="Error in url"):
            validate_url(url)


class TestCreateClient:
    """Test session setup"""

    @patch("utils.search.connector.ElasticsearchConnector.check_health", return_value=True)
    def test_basic_auth(self, _check):
        connector = ElasticsearchConnector(
            ElasticsearchSettings(username="elastic", password="changeme")
        )

        client = connector.create_client()

        assert client.session.auth == ("elastic", "changeme")
        assert connector.client is client

    @patch("utils.search.connector.ElasticsearchConnector.check_health", return_value=True)
    def test_empty_credentials_skip_auth(self, _check, caplog):
        connector = ElasticsearchConnector(ElasticsearchSettings(username="elastic"))

        with caplog.at_level("WARNING"):
            client = connector.create_client()

        assert client.session.auth is None
        assert "Basic authentication for elasticsearch is not used" in caplog.text

    @patch("utils.search.connector.ElasticsearchConnector.check_health", return_value=True)
    def test_timeouts(self, _check):
        connector = ElasticsearchConnector(
            ElasticsearchSettings(connect_timeout=5, socket_timeout=30)
        )

        assert connector.create_client().timeout == (5, 30)

    def test_invalid_url(self):
        connector = ElasticsearchConnector(ElasticsearchSettings(url="not a url"))

        with pytest.raises(ValueError, match="Error in url"):
            connector.create_client()

    @patch("utils.search.connector.ElasticsearchConnector.check_health", return_value=True)
    def test_certificate_path(self, _check, tmp_path):
        cert = tmp_path / "ca.pem"
        cert.write_text("-----BEGIN CERTIFICATE-----\n")
        settings = ElasticsearchSettings(
            url="https://es:9200",
            ssl=SslSettings(certificate_path=str(cert)),
        )

        client = ElasticsearchConnector(settings).create_client()

        assert client.session.verify == str(cert)

    def test_missing_certificate(self, tmp_path):
        settings = ElasticsearchSettings(
            url="https://es:9200",
            ssl=SslSettings(certificate_path=str(tmp_path / "missing.pem")),
        )

        with pytest.raises(ValueError, match="Could not load configured server certificate"):
            ElasticsearchConnector(settings).create_client()

    def test_empty_certificate(self, tmp_path):
        cert = tmp_path / "empty.pem"
        cert.write_text("")
        settings = ElasticsearchSettings(
            url="https://es:9200",
            ssl=SslSettings(certificate_path=str(cert)),
        )

        with pytest.raises(ValueError, match="file is empty"):
            ElasticsearchConnector(settings).create_client()

    @patch("utils.search.connector.ElasticsearchConnector.check_health", return_value=True)
    def test_self_signed_keeps_verification(self, _check, caplog):
        settings = ElasticsearchSettings(url="https://es:9200", ssl=SslSettings(self_signed=True))

        with caplog.at_level("WARNING"):
            client = ElasticsearchConnector(settings).create_client()

        assert client.session.verify is True
        assert "no server certificate is configured" in caplog.text

    @patch("utils.search.connector.ElasticsearchConnector.check_health", return_value=True)
    def test_hostname_verification_disabled(self, _check):
        settings = ElasticsearchSettings(
            url="https://es:9200",
            ssl=SslSettings(verify_hostname=False),
        )

        client = ElasticsearchConnector(settings).create_client()

        assert isinstance(client.session.get_adapter("https://es:9200"), HostnameIgnoringAdapter)

    @patch("utils.search.connector.ElasticsearchConnector.check_health", return_value=False)
    def test_unhealthy_cluster_still_returns_client(self, _check, caplog):
        connector = ElasticsearchConnector(ElasticsearchSettings())

        with caplog.at_level("WARNING"):
            client = connector.create_client()

        assert client is not None
        assert "Elasticsearch cluster is not accessible" in caplog.text


class TestCheckHealth:
    """Test the health check retry loop"""

    @patch("utils.retry.time.sleep")
    def test_healthy_on_first_attempt(self, mock_sleep):
        connector = ElasticsearchConnector(ElasticsearchSettings())
        client = _healthy_client()

        assert connector.check_health(client) is True
        client.cluster_health.assert_called_once()
        mock_sleep.assert_not_called()

    @patch("utils.retry.time.sleep")
    def test_retries_transport_failures(self, mock_sleep):
        connector = ElasticsearchConnector(ElasticsearchSettings(), health_check_delay=3.0)
        client = _healthy_client()
        client.cluster_health.side_effect = [
            BackendUnavailable("Connection refused"),
            BackendUnavailable("Connection refused"),
            {"cluster_name": "elasticsearch"},
        ]

        assert connector.check_health(client) is True
        assert client.cluster_health.call_count == 3
        mock_sleep.assert_called_with(3.0)

    @patch("utils.retry.time.sleep")
    def test_gives_up_after_attempt_budget(self, mock_sleep):
        connector = ElasticsearchConnector(ElasticsearchSettings(), health_check_attempts=10)
        client = MagicMock()
        client.cluster_health.side_effect = BackendUnavailable("Connection refused")

        with pytest.raises(BackendUnavailable, match="Couldn't connect to Elasticsearch. Abort."):
            connector.check_health(client)

        assert client.cluster_health.call_count == 10

    @patch("utils.retry.time.sleep")
    def test_rejected_request_not_retried(self, mock_sleep):
        connector = ElasticsearchConnector(ElasticsearchSettings(), health_check_attempts=10)
        client = MagicMock()
        client.cluster_health.side_effect = QueryError(
            "Elasticsearch request returned HTTP 401", status=401
        )

        with pytest.raises(QueryError) as exc_info:
            connector.check_health(client)

        assert exc_info.value.status == 401
        assert client.cluster_health.call_count == 1
        mock_sleep.assert_not_called()

    @patch("utils.retry.time.sleep")
    def test_empty_cluster_name_is_unhealthy(self, mock_sleep):
        connector = ElasticsearchConnector(ElasticsearchSettings(), health_check_attempts=3)
        client = _healthy_client(cluster_name="")

        assert connector.check_health(client) is False
        assert client.cluster_health.call_count == 3

    @patch("utils.retry.time.sleep")
    def test_shutdown_stops_waiting(self, mock_sleep):
        connector = ElasticsearchConnector(ElasticsearchSettings(), health_check_attempts=10)
        client = _healthy_client(cluster_name="")
        mock_sleep.side_effect = lambda _delay: connector.shutdown()

        assert connector.check_health(client) is False
        assert client.cluster_health.call_count == 2

    def test_shutdown_closes_client(self):
        connector = ElasticsearchConnector(ElasticsearchSettings())
        connector.client = Mock()
        client = connector.client

        connector.shutdown()

        client.close.assert_called_once()
        assert connector.client is None
