import httpx
import pytest

from reqfabric.urls import build_uri, stringify_params


def test_stringify_params():
    assert stringify_params(
        {"page": 2, "ratio": 0.5, "flag": False, "ids": [1, 2], "gone": None, "q": "x"}
    ) == {"page": "2", "ratio": "0.5", "flag": "false", "ids": ["1", "2"], "q": "x"}


def test_build_uri_from_bare_host():
    url = build_uri("api.example.com", "/items/1")
    assert str(url) == "https://api.example.com/items/1"


def test_build_uri_with_params():
    url = build_uri("api.example.com", "search", {"q": "a b", "ids": ["1", "2"]})
    assert url.path == "/search"
    assert url.params.get_list("ids") == ["1", "2"]
    assert url.params["q"] == "a b"


def test_build_uri_respects_explicit_scheme():
    url = build_uri("http://localhost:8080/", "/health")
    assert str(url) == "http://localhost:8080/health"


def test_build_uri_uses_given_scheme():
    url = build_uri("localhost:8080", "/health", scheme="http")
    assert url.scheme == "http"
    assert url.port == 8080


def test_build_uri_rejects_invalid_port():
    with pytest.raises(httpx.InvalidURL):
        build_uri("api.example.com:notaport", "/")
