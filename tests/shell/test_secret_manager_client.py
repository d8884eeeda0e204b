"""Tests for the Secret Manager client.

Uses unittest.mock in place of the Secret Manager SDK client.
"""

import os
import pytest
from unittest.mock import MagicMock, patch

from google.api_core import exceptions as gcp_exceptions

from src.shell.secret_manager_client import SecretManagerClient, SecretManagerConfig


@pytest.fixture
def sdk_client():
    return MagicMock()


@pytest.fixture
def client(sdk_client):
    secret_client = SecretManagerClient(SecretManagerConfig(project_id="my-project"))
    secret_client._client = sdk_client
    return secret_client


class TestGetSecret:
    """Tests for SecretManagerClient.get_secret()."""

    def test_fetches_latest_version(self, client, sdk_client):
        sdk_client.access_secret_version.return_value.payload.data = b"s3cret"

        assert client.get_secret("push-key") == "s3cret"
        sdk_client.access_secret_version.assert_called_once_with(
            request={"name": "projects/my-project/secrets/push-key/versions/latest"}
        )

    def test_api_error_returns_none(self, client, sdk_client):
        sdk_client.access_secret_version.side_effect = gcp_exceptions.NotFound("missing")
        assert client.get_secret("push-key") is None

    def test_no_project_returns_none(self):
        assert SecretManagerClient().get_secret("push-key") is None


class TestResolve:
    """Tests for SecretManagerClient.resolve()."""

    def test_plain_value(self, client, sdk_client):
        assert client.resolve("plain") == "plain"
        sdk_client.access_secret_version.assert_not_called()

    def test_secret_placeholder(self, client, sdk_client):
        """Secret values are stripped of surrounding whitespace."""
        sdk_client.access_secret_version.return_value.payload.data = b"s3cret\n"
        assert client.resolve("${secret:push-key}") == "s3cret"

    def test_unresolved_secret_is_kept(self, client, sdk_client):
        sdk_client.access_secret_version.side_effect = gcp_exceptions.PermissionDenied("no")
        assert client.resolve("${secret:push-key}") == "${secret:push-key}"

    def test_env_placeholder(self, client):
        with patch.dict(os.environ, {"PUSH_URL": "https://push.example.com/send"}):
            assert client.resolve("${PUSH_URL}") == "https://push.example.com/send"

    def test_unset_env_is_kept(self, client):
        with patch.dict(os.environ, {}, clear=True):
            assert client.resolve("${PUSH_URL}") == "${PUSH_URL}"
