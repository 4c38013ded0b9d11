"""
Tests for the httpx control-plane client.
"""

import base64
import json
from urllib.parse import parse_qs

import httpx
import pytest

from pgmigrate.clients.base import ControlPlane
from pgmigrate.clients.heroku import HerokuClient
from pgmigrate.core.exceptions import AddonAlreadyInstalled, ControlPlaneError


def make_client(handler):
    requests = []

    def record(request: httpx.Request) -> httpx.Response:
        requests.append(request)
        return handler(request)

    client = HerokuClient("secret-key", transport=httpx.MockTransport(record))
    return client, requests


def form(request: httpx.Request) -> dict:
    return {k: v[0] for k, v in parse_qs(request.content.decode()).items()}


class TestHerokuClient:
    """Tests for HerokuClient requests and responses."""

    def test_satisfies_protocol(self):
        """Test the client implements the ControlPlane protocol."""
        client, _ = make_client(lambda r: httpx.Response(200, json={}))

        assert isinstance(client, ControlPlane)

    def test_basic_auth_and_accept_header(self):
        """Test the API key is sent as the basic-auth password."""
        client, requests = make_client(lambda r: httpx.Response(200, json={}))

        client.get_config_vars("my-app")

        expected = "Basic " + base64.b64encode(b":secret-key").decode()
        assert requests[0].headers["Authorization"] == expected
        assert requests[0].headers["Accept"] == "application/json"

    @pytest.mark.parametrize("enabled, flag", [(True, "1"), (False, "0")])
    def test_set_maintenance(self, enabled, flag):
        """Test maintenance mode is posted as a form field."""
        client, requests = make_client(lambda r: httpx.Response(200, text=""))

        client.set_maintenance("my-app", enabled)

        request = requests[0]
        assert request.method == "POST"
        assert request.url.path == "/apps/my-app/server/maintenance"
        assert form(request) == {"maintenance_mode": flag}

    def test_get_process_counts(self):
        """Test processes are counted per type."""
        processes = [{"process": "web.1"}, {"process": "web.2"}, {"process": "worker.1"}]
        client, requests = make_client(lambda r: httpx.Response(200, json=processes))

        assert client.get_process_counts("my-app") == {"web": 2, "worker": 1}
        assert requests[0].url.path == "/apps/my-app/ps"

    def test_set_process_count(self):
        """Test scaling posts the type and quantity."""
        client, requests = make_client(lambda r: httpx.Response(200, text="0"))

        client.set_process_count("my-app", "worker", 0)

        assert requests[0].url.path == "/apps/my-app/ps/scale"
        assert form(requests[0]) == {"type": "worker", "qty": "0"}

    def test_provision_addon(self):
        """Test provisioning returns the decoded response."""
        body = {"status": "Installed", "message": "Attached as HEROKU_POSTGRESQL_RED_URL"}
        client, requests = make_client(lambda r: httpx.Response(200, json=body))

        assert client.provision_addon("my-app", "heroku-postgresql:dev") == body
        assert requests[0].method == "POST"
        assert requests[0].url.path == "/apps/my-app/addons/heroku-postgresql:dev"

    def test_provision_addon_already_installed(self):
        """Test a 422 saying the add-on exists maps to AddonAlreadyInstalled."""
        client, _ = make_client(
            lambda r: httpx.Response(422, json={"error": "Add-on plan already installed."})
        )

        with pytest.raises(AddonAlreadyInstalled) as exc_info:
            client.provision_addon("my-app", "pgbackups:plus")

        assert exc_info.value.status_code == 422

    def test_provision_addon_other_422(self):
        """Test other validation errors stay plain ControlPlaneErrors."""
        client, _ = make_client(lambda r: httpx.Response(422, json={"error": "Plan not found"}))

        with pytest.raises(ControlPlaneError) as exc_info:
            client.provision_addon("my-app", "pgbackups:nope")

        assert not isinstance(exc_info.value, AddonAlreadyInstalled)
        assert str(exc_info.value) == "Plan not found"

    def test_put_config_vars_sends_json(self):
        """Test config vars are written as a JSON object."""
        client, requests = make_client(lambda r: httpx.Response(200, json={}))

        client.put_config_vars("my-app", {"DATABASE_URL": "postgres://new"})

        assert requests[0].method == "PUT"
        assert requests[0].url.path == "/apps/my-app/config_vars"
        assert json.loads(requests[0].content) == {"DATABASE_URL": "postgres://new"}

    def test_error_response(self):
        """Test non-2xx responses raise ControlPlaneError with the status code."""
        client, _ = make_client(lambda r: httpx.Response(503, text="Service Unavailable"))

        with pytest.raises(ControlPlaneError, match="Service Unavailable") as exc_info:
            client.get_config_vars("my-app")

        assert exc_info.value.status_code == 503

    def test_empty_error_body(self):
        """Test an empty error body falls back to the status line."""
        client, _ = make_client(lambda r: httpx.Response(404))

        with pytest.raises(ControlPlaneError, match="HTTP 404"):
            client.get_process_counts("missing-app")

    def test_transport_error(self):
        """Test transport failures are wrapped without a status code."""

        def explode(request):
            raise httpx.ConnectError("connection refused", request=request)

        client, _ = make_client(explode)

        with pytest.raises(ControlPlaneError, match="connection refused") as exc_info:
            client.get_config_vars("my-app")

        assert exc_info.value.status_code is None

    def test_context_manager_closes(self):
        """Test the client can be used as a context manager."""
        with HerokuClient("k", transport=httpx.MockTransport(lambda r: httpx.Response(200))) as client:
            pass

        assert client._client.is_closed
