from __future__ import annotations

from pathlib import Path

import yaml

from ..domain import Request


def load_requests_from_yaml(path: str) -> list[Request]:
    p = Path(path)
    if not p.exists():
        raise RuntimeError(f"requests file not found: {path}")

    with p.open("r", encoding="utf-8") as f:
        data = yaml.safe_load(f)

    if not isinstance(data, dict) or "requests" not in data:
        raise RuntimeError("Invalid requests file format")

    entries = data["requests"]
    if not isinstance(entries, list):
        raise RuntimeError("requests must be a list")

    requests = []
    for entry in entries:
        if not isinstance(entry, dict):
            raise RuntimeError(f"Invalid request entry: {entry}")
        url = (entry.get("url") or "").strip()
        if not url:
            raise RuntimeError(f"Invalid request entry: {entry}")
        method = (entry.get("method") or "GET").strip().upper()
        headers = {
            str(key).strip(): str(value).strip()
            for key, value in (entry.get("headers") or {}).items()
        }
        body = entry.get("body")
        if body is not None and not isinstance(body, str):
            raise RuntimeError(f"Request body must be a string: {entry}")
        requests.append(
            Request(
                url=url,
                method=method,
                headers=headers,
                body=body.encode("utf-8") if isinstance(body, str) else None,
            )
        )
    return requests
