"""Tests for the upload client in flipr_cropper.api_client (HTTP is mocked)."""

from unittest.mock import MagicMock

import pytest
import requests

from flipr_cropper.api_client import ApiClient
from flipr_cropper.config import UPLOAD_MAX_BYTES
from flipr_cropper.exceptions import UploadError
from flipr_cropper.models import OutputImage


def _response(status: int = 200, body=None, text: str = ""):
    resp = MagicMock()
    resp.status_code = status
    resp.ok = 200 <= status < 400
    if body is None:
        resp.json.side_effect = ValueError("no json")
    else:
        resp.json.return_value = body
    resp.text = text
    return resp


@pytest.fixture
def http():
    session = MagicMock()
    session.headers = {}
    return session


@pytest.fixture
def client(http):
    return ApiClient(base_url="http://cms.test/", timeout=5, session=http)


@pytest.fixture
def jpeg():
    return OutputImage(data=b"\xff\xd8jpegdata\xff\xd9", width=450, height=350,
                       format="JPEG", quality=0.9, created_ms=1700000000000)


class TestProjects:

    def test_add_project_sends_multipart(self, client, http, jpeg):
        http.request.return_value = _response(200, {
            "id": 7, "name": "Villa", "description": "Sea view", "image": "/uploads/1-2.jpg",
        })
        result = client.add_project("  Villa ", "Sea view", jpeg)

        assert result["id"] == 7
        kwargs = http.request.call_args.kwargs
        assert kwargs["method"] == "POST"
        assert kwargs["url"] == "http://cms.test/api/projects"
        assert kwargs["data"] == {"name": "Villa", "description": "Sea view"}
        assert kwargs["files"] == {"image": ("cropped-1700000000000.jpg", jpeg.data, "image/jpeg")}
        assert kwargs["timeout"] == 5

    def test_get_projects(self, client, http):
        http.request.return_value = _response(200, [{"id": 1, "name": "A"}])
        assert client.get_projects() == [{"id": 1, "name": "A"}]
        assert http.request.call_args.kwargs["method"] == "GET"

    def test_requires_image(self, client, http):
        with pytest.raises(UploadError, match="select and crop"):
            client.add_project("Villa", "Sea view", None)
        http.request.assert_not_called()


class TestClients:

    def test_add_client_includes_designation(self, client, http, jpeg):
        http.request.return_value = _response(200, {"id": 3, "name": "Ann"})
        client.add_client("Ann", "Great team", "CEO", jpeg)
        kwargs = http.request.call_args.kwargs
        assert kwargs["url"] == "http://cms.test/api/clients"
        assert kwargs["data"] == {"name": "Ann", "description": "Great team", "designation": "CEO"}

    def test_missing_fields(self, client, http, jpeg):
        with pytest.raises(UploadError, match="designation"):
            client.add_client("Ann", "Great team", "   ", jpeg)
        http.request.assert_not_called()


class TestSubmissions:

    def test_get_contacts(self, client, http):
        contact = {"id": 2, "full_name": "Ann Lee", "email": "ann@example.com",
                   "mobile_number": "555-0101", "city": "Pune", "created_at": "2024-05-01 10:00:00"}
        http.request.return_value = _response(200, [contact])
        assert client.get_contacts() == [contact]
        kwargs = http.request.call_args.kwargs
        assert kwargs["method"] == "GET"
        assert kwargs["url"] == "http://cms.test/api/contacts"

    def test_get_newsletter_subscriptions(self, client, http):
        http.request.return_value = _response(200, [{"id": 1, "email": "a@b.test", "created_at": "2024-05-01"}])
        assert client.get_newsletter_subscriptions()[0]["email"] == "a@b.test"
        assert http.request.call_args.kwargs["url"] == "http://cms.test/api/newsletter"

    def test_list_error(self, client, http):
        http.request.return_value = _response(500, {"error": "database is locked"})
        with pytest.raises(UploadError, match="database is locked"):
            client.get_newsletter_subscriptions()


class TestValidation:

    def test_oversize_image_rejected(self, client, http):
        big = OutputImage(data=b"\x00" * (UPLOAD_MAX_BYTES + 1), width=450, height=350,
                          format="PNG", quality=0.9)
        with pytest.raises(UploadError, match="at most"):
            client.add_project("Villa", "Sea view", big)
        http.request.assert_not_called()

    def test_empty_image_rejected(self, jpeg):
        with pytest.raises(UploadError, match="empty"):
            ApiClient.validate_image(OutputImage(data=b"", width=1, height=1, format="JPEG", quality=0.9))

    def test_unknown_format_rejected(self):
        odd = OutputImage(data=b"x", width=1, height=1, format="TIFF", quality=0.9)
        with pytest.raises(UploadError, match="Only image files"):
            ApiClient.validate_image(odd)


class TestErrors:

    def test_server_error_message(self, client, http, jpeg):
        http.request.return_value = _response(400, {"error": "Only image files are allowed!"})
        with pytest.raises(UploadError) as info:
            client.add_project("Villa", "Sea view", jpeg)
        assert info.value.status_code == 400
        assert info.value.message == "Only image files are allowed!"

    def test_non_json_error(self, client, http):
        http.request.return_value = _response(502, None, text="Bad Gateway")
        with pytest.raises(UploadError) as info:
            client.get_clients()
        assert info.value.status_code == 502
        assert info.value.response == {"raw": "Bad Gateway"}

    def test_transport_failure(self, client, http):
        http.request.side_effect = requests.ConnectionError("refused")
        with pytest.raises(UploadError, match="refused"):
            client.get_projects()


class TestHelpers:

    def test_image_url(self, client):
        assert client.image_url("/uploads/a.jpg") == "http://cms.test/uploads/a.jpg"
        assert client.image_url("https://cdn.test/a.jpg") == "https://cdn.test/a.jpg"
        assert client.image_url(None) == ""

    def test_context_manager_closes_session(self, http):
        with ApiClient(base_url="http://cms.test", session=http) as api:
            assert api.session is http
        http.close.assert_called_once()
