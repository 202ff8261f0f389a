"""Tests for API endpoints."""

import pytest

from flylinks import codes, models


class TestAuthentication:
    def test_health_is_public(self, client):
        response = client.get("/health")

        assert response.status_code == 200
        assert response.json()["status"] == "ok"

    def test_requires_credentials(self, client):
        assert client.post("/api/add", json={"url": "http://example.com/"}).status_code == 401

    def test_wrong_api_key(self, client):
        response = client.get("/links", headers={"X-API-Key": "wrong"})

        assert response.status_code == 401

    def test_api_key_query_parameter(self, client):
        assert client.get("/links?api_key=test-key").status_code == 200

    def test_non_ascii_api_key(self, client):
        assert client.get("/links", params={"api_key": "clé"}).status_code == 401

    def test_login_sets_cookie(self, client):
        response = client.post("/login", data={"username": "anyone", "password": "test-key"})

        assert response.status_code == 200
        assert response.json()["token_type"] == "bearer"
        assert "access_token" in response.cookies
        assert client.get("/links").status_code == 200

    def test_login_rejects_bad_key(self, client):
        response = client.post("/login", data={"username": "anyone", "password": "nope"})

        assert response.status_code == 400


class TestShortenEndpoint:
    def test_shorten(self, client, api_headers):
        response = client.post("/api/add", json={"url": "http://example.com/article with spaces.html"},
                               headers=api_headers)

        assert response.status_code == 200
        data = response.json()
        assert data["code"] == "0"
        assert data["url"] == "http://example.com/article%20with%20spaces.html"
        assert data["user"] == "default user"
        assert data["clicks"] == 0
        assert data["short_url"] == "http://fly.test/0"

    def test_same_url_same_code(self, client, api_headers):
        first = client.post("/api/add", json={"url": "http://example.com"}, headers=api_headers)
        second = client.post("/api/add", json={"url": "http://example.com/"}, headers=api_headers)

        assert first.json()["code"] == second.json()["code"]

    def test_per_user(self, client, token_headers):
        alice = client.post("/api/add", json={"url": "http://example.com/"}, headers=token_headers("alice"))
        bob = client.post("/api/add", json={"url": "http://example.com/"}, headers=token_headers("bob"))

        assert alice.json()["code"] != bob.json()["code"]
        assert alice.json()["user"] == "alice"
        assert bob.json()["user"] == "bob"

    def test_requested_code(self, client, api_headers):
        response = client.post("/api/add", json={"url": "http://example.com/", "short_code": "home"},
                               headers=api_headers)

        assert response.json()["code"] == "home"

    def test_requested_code_taken(self, client, api_headers):
        client.post("/api/add", json={"url": "http://example.com/", "short_code": "home"}, headers=api_headers)
        response = client.post("/api/add", json={"url": "http://example.com/x", "short_code": "home"},
                               headers=api_headers)

        assert response.status_code == 409

    @pytest.mark.parametrize("code", ["health", "links", "api"])
    def test_requested_route_name(self, client, api_headers, code):
        response = client.post("/api/add", json={"url": "http://example.com/", "short_code": code},
                               headers=api_headers)

        assert response.status_code == 409
        assert client.get("/health").json()["status"] == "ok"

    @pytest.mark.parametrize("url", ["ftp://ariejan.net", "ariejan.net", "skype:adevroom"])
    def test_invalid_url(self, client, api_headers, url):
        response = client.post("/api/add", json={"url": url}, headers=api_headers)

        assert response.status_code == 400
        assert response.json()["detail"] == "The URL you posted is invalid."


class TestRedirect:
    def test_redirects_and_counts(self, client, api_headers):
        code = client.post("/api/add", json={"url": "http://example.com/page"}, headers=api_headers).json()["code"]

        response = client.get(f"/{code}", follow_redirects=False)

        assert response.status_code == 301
        assert response.headers["location"] == "http://example.com/page"
        info = client.get(f"/api/info/{code}", headers=api_headers).json()
        assert info["clicks"] == 1

    def test_unknown_code(self, client):
        response = client.get("/nothing-here", follow_redirects=False)

        assert response.status_code == 404

    def test_info_unknown_code(self, client, api_headers):
        assert client.get("/api/info/nothing", headers=api_headers).status_code == 404


class TestListAndDelete:
    def test_lists_own_links(self, client, token_headers):
        for n in range(3):
            client.post("/api/add", json={"url": f"http://example.com/{n}"}, headers=token_headers("alice"))
        client.post("/api/add", json={"url": "http://example.com/0"}, headers=token_headers("bob"))

        data = client.get("/links", headers=token_headers("alice")).json()

        assert data["total"] == 3
        assert [item["url"] for item in data["items"]] == [
            "http://example.com/2", "http://example.com/1", "http://example.com/0",
        ]
        assert data["sort_column"] == "created_at"
        assert data["sort_order"] == "desc"

    def test_list_sort_parameters(self, client, api_headers):
        for n in range(3):
            client.post("/api/add", json={"url": f"http://example.com/{n}"}, headers=api_headers)

        data = client.get("/links?s=code&d=asc&limit=2", headers=api_headers).json()

        assert [item["code"] for item in data["items"]] == ["0", "1"]
        assert data["limit"] == 2

    def test_list_rejects_unknown_column(self, client, api_headers):
        assert client.get("/links?s=password", headers=api_headers).status_code == 422

    def test_owner_deletes(self, client, token_headers):
        code = client.post("/api/add", json={"url": "http://example.com/"},
                           headers=token_headers("alice")).json()["code"]

        response = client.delete(f"/delete/{code}", headers=token_headers("alice"))

        assert response.status_code == 200
        assert response.json()["ok"] is True
        assert client.get(f"/{code}", follow_redirects=False).status_code == 404

    def test_other_user_forbidden(self, client, token_headers):
        code = client.post("/api/add", json={"url": "http://example.com/"},
                           headers=token_headers("alice")).json()["code"]

        response = client.delete(f"/delete/{code}", headers=token_headers("bob"))

        assert response.status_code == 403
        assert client.get(f"/{code}", follow_redirects=False).status_code == 301

    def test_delete_unknown(self, client, api_headers):
        assert client.delete("/delete/nothing", headers=api_headers).status_code == 404


class TestNextCode:
    def test_issues_sequence(self, client, api_headers):
        first = client.get("/api/next-code", headers=api_headers).json()["code"]
        second = client.get("/api/next-code", headers=api_headers).json()["code"]

        assert (first, second) == ("0", "1")
        added = client.post("/api/add", json={"url": "http://example.com/"}, headers=api_headers)
        assert added.json()["code"] == "2"

    def test_sequence_skips_route_names(self, client, api_headers, session_factory):
        with session_factory() as db:
            db.query(models.CodeFactory).update({models.CodeFactory.count: codes.decode("api")})
            db.commit()

        code = client.post("/api/add", json={"url": "http://example.com/page"}, headers=api_headers).json()["code"]

        assert code == codes.advance("api")
        response = client.get(f"/{code}", follow_redirects=False)
        assert response.status_code == 301
        assert response.headers["location"] == "http://example.com/page"
