"""
Unit Tests for Service Clients

Tests HTTP handling and response normalization with a mocked requests session.
"""

from unittest.mock import MagicMock

import pytest
import requests

from conftest import lesson_record
from release_tour.api_client import CatalogClient, ExecutionClient, normalize_run_response
from release_tour.config import TourConfig
from release_tour.errors import CatalogFetchError, TransportError
from release_tour.models import SubmissionPayload


def make_response(status_code=200, body=None, json_error=None):
    response = MagicMock()
    response.status_code = status_code
    response.ok = 200 <= status_code < 300
    if json_error is not None:
        response.json.side_effect = json_error
    else:
        response.json.return_value = body
    return response


class TestNormalizeRunResponse:
    """Test suite for response normalization."""

    def test_go_version_preferred(self):
        fields = normalize_run_response({"used_version": "1.24", "go_version": "1.24.3"})
        assert fields["used_version"] == "1.24.3"

    def test_used_version_alone(self):
        assert normalize_run_response({"used_version": "1.24"})["used_version"] == "1.24"

    def test_empty_strings_are_absent(self):
        fields = normalize_run_response({"output": "", "error": "", "go_version": ""})
        assert fields == {
            "output": None,
            "error": None,
            "used_version": None,
            "detected_version": None,
            "execution_time": None,
        }


class TestCatalogClient:
    """Test suite for CatalogClient."""

    @pytest.fixture
    def http(self):
        return MagicMock(spec=requests.Session)

    @pytest.fixture
    def client(self, http):
        return CatalogClient.from_config(TourConfig(api_url="http://tour.test"), session=http)

    @pytest.mark.asyncio
    async def test_fetch_lessons(self, client, http):
        http.get.return_value = make_response(body=[lesson_record(1), lesson_record(2)])

        lessons = await client.fetch_lessons("1.24")

        assert [lesson.id for lesson in lessons] == [1, 2]
        http.get.assert_called_once_with(
            "http://tour.test/api/lessons", params={"version": "1.24"}, timeout=10.0
        )

    @pytest.mark.asyncio
    async def test_non_2xx_is_fetch_error(self, client, http):
        http.get.return_value = make_response(status_code=500)

        with pytest.raises(CatalogFetchError) as exc_info:
            await client.fetch_lessons("1.24")

        assert isinstance(exc_info.value.cause, TransportError)
        assert exc_info.value.cause.status_code == 500

    @pytest.mark.asyncio
    async def test_network_error_is_fetch_error(self, client, http):
        http.get.side_effect = requests.exceptions.ConnectionError("refused")

        with pytest.raises(CatalogFetchError):
            await client.fetch_lessons("1.24")

    @pytest.mark.asyncio
    async def test_invalid_json_is_fetch_error(self, client, http):
        http.get.return_value = make_response(json_error=ValueError("Expecting value"))

        with pytest.raises(CatalogFetchError):
            await client.fetch_lessons("1.24")

    @pytest.mark.asyncio
    @pytest.mark.parametrize("body", [
        {"lessons": []},
        [{"title": "no id"}],
        [lesson_record(1), lesson_record(1)],
        [lesson_record(1, version="1.23")],
    ])
    async def test_malformed_body_is_fetch_error(self, client, http, body):
        http.get.return_value = make_response(body=body)

        with pytest.raises(CatalogFetchError):
            await client.fetch_lessons("1.24")


class TestExecutionClient:
    """Test suite for ExecutionClient."""

    @pytest.fixture
    def http(self):
        return MagicMock(spec=requests.Session)

    @pytest.fixture
    def client(self, http):
        return ExecutionClient.from_config(TourConfig(api_url="http://tour.test/"), session=http)

    @pytest.mark.asyncio
    async def test_run_posts_payload(self, client, http):
        http.post.return_value = make_response(body={"output": "hi", "go_version": "1.24.3"})

        fields = await client.run(SubmissionPayload(code="package main", version="1.24"))

        assert fields["output"] == "hi"
        assert fields["used_version"] == "1.24.3"
        http.post.assert_called_once_with(
            "http://tour.test/api/run",
            json={"code": "package main", "version": "1.24"},
            timeout=30.0,
        )

    @pytest.mark.asyncio
    async def test_non_2xx_is_transport_error(self, client, http):
        http.post.return_value = make_response(status_code=503)

        with pytest.raises(TransportError) as exc_info:
            await client.run(SubmissionPayload(code="package main", version="1.24"))

        assert exc_info.value.status_code == 503

    @pytest.mark.asyncio
    async def test_timeout_is_transport_error(self, client, http):
        http.post.side_effect = requests.exceptions.Timeout("read timed out")

        with pytest.raises(TransportError):
            await client.run(SubmissionPayload(code="package main", version="1.24"))

    @pytest.mark.asyncio
    async def test_non_object_body_is_transport_error(self, client, http):
        http.post.return_value = make_response(body=["not", "an", "object"])

        with pytest.raises(TransportError):
            await client.run(SubmissionPayload(code="package main", version="1.24"))


if __name__ == "__main__":
    pytest.main([__file__, "-v"])
