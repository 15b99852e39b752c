"""URI assembly helpers for the request pipeline."""

from collections.abc import Mapping
from typing import Any

import httpx

QueryValue = str | list[str]


def stringify_params(params: Mapping[str, Any]) -> dict[str, QueryValue]:
    """Convert query parameter values to the strings placed in the URI.

    Booleans become ``"true"``/``"false"``, lists and tuples become lists of
    strings (repeated keys in the query string) and ``None`` values are
    dropped.
    """
    result: dict[str, QueryValue] = {}
    for key, value in params.items():
        if value is None:
            continue
        if isinstance(value, list | tuple):
            result[key] = [_stringify(item) for item in value]
        else:
            result[key] = _stringify(value)
    return result


def _stringify(value: Any) -> str:
    if isinstance(value, bool):
        return "true" if value else "false"
    return str(value)


def build_uri(
    host: str,
    path: str,
    params: Mapping[str, QueryValue] | None = None,
    *,
    scheme: str = "https",
) -> httpx.URL:
    """Build the target URL from host, path and string query parameters.

    Args:
        host: Bare authority (``api.example.com``) or a base URL with a scheme.
        path: Resource path, with or without a leading slash.
        params: Already-stringified query parameters.
        scheme: Scheme used when ``host`` carries none.

    Returns:
        httpx.URL: The assembled URL.
    """
    base = host if "://" in host else f"{scheme}://{host}"
    url = f"{base.rstrip('/')}/{path.lstrip('/')}"
    return httpx.URL(url, params=dict(params) if params else None)
