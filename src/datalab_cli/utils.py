import os

import httpx
from rich.console import Console

# Exports may be written to stdout, so status output goes to stderr.
console = Console(stderr=True)

BASE_URL = os.environ.get("DATALAB_BASE_URL", "http://localhost:8080")


def get_client() -> httpx.Client:
    return httpx.Client(base_url=BASE_URL, timeout=httpx.Timeout(30.0, read=None))


def error_detail(response: httpx.Response) -> str:
    try:
        body = response.json()
    except ValueError:
        return response.text or f"HTTP {response.status_code}"
    if isinstance(body, dict) and "detail" in body:
        return str(body["detail"])
    return str(body)
