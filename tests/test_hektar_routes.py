"""Tests for the hectare sponsorship endpoint."""

from __future__ import annotations

from dataclasses import replace

import pytest
from fastapi.testclient import TestClient

from auth import security
from core.store import StoreTimeoutError, StoreUnavailableError
from main import create_app

from .fakes import InMemoryStore, feature

URL = "/urwaldpate/hektar"


def ack_lines(body: str) -> list[str]:
    return [line for line in body.splitlines() if line]


class TestAssignHektar:
    @pytest.fixture
    def store(self) -> InMemoryStore:
        return InMemoryStore(
            {"biesenthalerbecken": {"features": [feature(10), feature(20)]}}
        )

    def test_matches_are_acknowledged_in_request_order(self, client, store, auth_headers):
        response = client.get(URL, params={"id": "20,10,99"}, headers=auth_headers)

        assert response.status_code == 200
        assert response.headers["content-type"].startswith("text/plain")
        assert ack_lines(response.text) == [
            "Put hektar with ID 20...",
            "Put hektar with ID 10...",
        ]
        features = store.lookup("biesenthalerbecken/features")
        assert [f["properties"]["PatenID"] for f in features] == [1, 1]

    def test_no_match_is_404_with_empty_body(self, client, store, auth_headers):
        response = client.get(URL, params={"id": "99,98"}, headers=auth_headers)

        assert response.status_code == 404
        assert response.content == b""
        assert store.updates() == []

    def test_empty_collection_is_404(self, client, store, auth_headers):
        store.data["biesenthalerbecken"]["features"] = []

        response = client.get(URL, params={"id": "5"}, headers=auth_headers)

        assert response.status_code == 404
        assert response.content == b""

    def test_unparsable_id_matches_raster_id_zero(self, client, store, auth_headers):
        store.data["biesenthalerbecken"]["features"].append(feature(0))

        response = client.get(URL, params={"id": "abc"}, headers=auth_headers)

        assert response.status_code == 200
        assert ack_lines(response.text) == ["Put hektar with ID 0..."]
        assert store.lookup("biesenthalerbecken/features/2/properties/PatenID") == 1

    def test_count_is_independent_of_request_order(self, client, auth_headers):
        forward = client.get(URL, params={"id": "10,20"}, headers=auth_headers)
        backward = client.get(URL, params={"id": "20,10"}, headers=auth_headers)

        assert ack_lines(forward.text) == list(reversed(ack_lines(backward.text)))

    def test_repeating_request_gives_same_outcome(self, client, store, auth_headers):
        first = client.get(URL, params={"id": "10"}, headers=auth_headers)
        second = client.get(URL, params={"id": "10"}, headers=auth_headers)

        assert first.text == second.text
        assert store.lookup("biesenthalerbecken/features/0/properties/PatenID") == 1

    def test_area_parameter_selects_area_collection(self, client, store, auth_headers):
        store.data["wildnispate"] = {"gorinsee": {"features": [feature(10)]}}

        response = client.get(URL, params={"id": "10", "area": "gorinsee"}, headers=auth_headers)

        assert response.status_code == 200
        assert store.updates() == [("wildnispate/gorinsee/features/0", {"properties/PatenID": 1})]

    def test_repeated_id_parameter_uses_first_value(self, client, store, auth_headers):
        response = client.get(URL, params=[("id", "10"), ("id", "20")], headers=auth_headers)

        assert response.status_code == 200
        assert ack_lines(response.text) == ["Put hektar with ID 10..."]
        assert store.updates() == [("biesenthalerbecken/features/0", {"properties/PatenID": 1})]

    def test_repeated_area_parameter_uses_first_value(self, client, store, auth_headers):
        store.data["wildnispate"] = {"gorinsee": {"features": [feature(10)]}}

        response = client.get(
            URL,
            params=[("id", "10"), ("area", "gorinsee"), ("area", "elsewhere")],
            headers=auth_headers,
        )

        assert response.status_code == 200
        assert store.updates() == [("wildnispate/gorinsee/features/0", {"properties/PatenID": 1})]

    def test_marker_is_one_whoever_calls(self, client, store):
        for subject in ("operator", "someone-else"):
            token = security.issue_token(signing_key="test-signing-key", subject=subject)
            response = client.get(
                URL,
                params={"id": "10"},
                headers={"Authorization": f"Bearer {token}"},
            )
            assert response.status_code == 200

        assert store.updates() == [
            ("biesenthalerbecken/features/0", {"properties/PatenID": 1}),
            ("biesenthalerbecken/features/0", {"properties/PatenID": 1}),
        ]

    def test_invalid_area_is_400(self, client, auth_headers):
        response = client.get(URL, params={"id": "10", "area": "../secrets"}, headers=auth_headers)

        assert response.status_code == 400

    def test_strict_mode_rejects_malformed_ids(self, settings, store, auth_headers):
        app = create_app(replace(settings, strict_identifiers=True), store)

        with TestClient(app) as strict_client:
            response = strict_client.get(URL, params={"id": "10,abc"}, headers=auth_headers)

        assert response.status_code == 400
        assert "abc" in response.json()["detail"]
        assert store.calls == []

    def test_store_outage_is_502(self, client, store, auth_headers):
        store.fail_on["get"] = StoreUnavailableError("connection refused")

        response = client.get(URL, params={"id": "10"}, headers=auth_headers)

        assert response.status_code == 502

    def test_store_timeout_is_504(self, client, store, auth_headers):
        store.fail_on["update"] = StoreTimeoutError("slow")

        response = client.get(URL, params={"id": "10"}, headers=auth_headers)

        assert response.status_code == 504

    def test_server_keeps_serving_after_store_failure(self, client, store, auth_headers):
        store.fail_on["get"] = StoreUnavailableError("blip")
        assert client.get(URL, params={"id": "10"}, headers=auth_headers).status_code == 502

        del store.fail_on["get"]
        assert client.get(URL, params={"id": "10"}, headers=auth_headers).status_code == 200


class TestHektarAuth:
    def test_missing_token_is_401(self, client, store):
        response = client.get(URL, params={"id": "10"})

        assert response.status_code == 401
        assert store.calls == []

    def test_legacy_token_header_is_accepted(self, client):
        token = security.issue_token(signing_key="test-signing-key", subject="legacy")

        response = client.get(URL, params={"id": "10"}, headers={"Token": token})

        assert response.status_code == 200

    def test_token_signed_with_other_key_is_401(self, client, store):
        token = security.issue_token(signing_key="someone-else", subject="operator")

        response = client.get(
            URL,
            params={"id": "10"},
            headers={"Authorization": f"Bearer {token}"},
        )

        assert response.status_code == 401
        assert store.calls == []

    def test_non_bearer_scheme_is_401(self, client):
        response = client.get(URL, params={"id": "10"}, headers={"Authorization": "Basic abc"})

        assert response.status_code == 401
