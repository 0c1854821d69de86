"""
URL utilities for building absolute links in redirects, gateway callbacks
and emails.

Primary source: APP_BASE_URL (the web frontend, e.g. https://thulobazaar.com)
API_BASE_URL: public base of this service, used for gateway return URLs.
"""
from __future__ import annotations

import os
from typing import Mapping, Optional
from urllib.parse import urlencode


def _add_scheme_if_missing(host: str) -> str:
    h = host.strip()
    if not h:
        return "http://localhost:3000"
    if h.startswith("http://") or h.startswith("https://"):
        return h
    # Simple heuristic: use http for localhost, otherwise https
    lower = h.lower()
    if lower.startswith("localhost") or lower.startswith("127.0.0.1"):
        return f"http://{h}"
    return f"https://{h}"


def _strip_trailing_slash(url: str) -> str:
    return url[:-1] if url.endswith("/") else url


def get_app_base_url() -> str:
    """Return normalized base URL for the frontend application.

    Defaults to http://localhost:3000 if APP_BASE_URL is not set.
    """
    base = os.getenv("APP_BASE_URL")
    if base and base.strip():
        return _strip_trailing_slash(_add_scheme_if_missing(base))
    return "http://localhost:3000"


def get_api_base_url() -> str:
    """Return the public base URL of this API, falling back to the app URL."""
    base = os.getenv("API_BASE_URL")
    if base and base.strip():
        return _strip_trailing_slash(_add_scheme_if_missing(base))
    return get_app_base_url()


def build_url(base: str, path: str, params: Optional[Mapping[str, object]] = None) -> str:
    """Join base and path and append non-empty query params."""
    url = f"{_strip_trailing_slash(base)}/{path.lstrip('/')}"
    if params:
        clean = {k: v for k, v in params.items() if v is not None and v != ""}
        if clean:
            url = f"{url}?{urlencode(clean)}"
    return url
