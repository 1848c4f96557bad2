"""Post-deploy smoke checks executed from the app container."""

from __future__ import annotations

import argparse
import os

import httpx

BASE_URL = os.getenv("SMOKE_BASE_URL", "http://localhost:8000")
API_PREFIX = "/api/v1"


def request(
    client: httpx.Client,
    path: str,
    *,
    method: str = "GET",
    body: dict[str, str] | None = None,
    token: str | None = None,
    expected: int = 200,
) -> httpx.Response:
    headers = {"Accept": "application/json"}
    if token:
        headers["Authorization"] = f"Bearer {token}"
    try:
        response = client.request(method, path, json=body, headers=headers)
    except httpx.HTTPError as exc:  # pragma: no cover - runtime smoke script
        raise RuntimeError(f"{method} {path} -> {exc}") from exc

    if response.status_code != expected:
        raise RuntimeError(
            f"{method} {path} -> {response.status_code}, expected {expected}: {response.text}",
        )
    return response


def main() -> None:
    parser = argparse.ArgumentParser(description="Smoke-check a deployed admin service.")
    parser.add_argument("--username", default=os.getenv("SMOKE_ADMIN_USERNAME"))
    parser.add_argument("--password", default=os.getenv("SMOKE_ADMIN_PASSWORD"))
    args = parser.parse_args()

    with httpx.Client(base_url=BASE_URL, timeout=30) as client:
        for endpoint in ["/health", "/ready", "/docs", "/metrics"]:
            request(client, endpoint, expected=200)

        request(client, f"{API_PREFIX}/identity/me", expected=401)

        if args.username and args.password:
            login_payload = request(
                client,
                f"{API_PREFIX}/identity/auth/login",
                method="POST",
                body={"username": args.username, "password": args.password},
            ).json()
            token = login_payload["session_token"]
            request(client, f"{API_PREFIX}/identity/me", token=token)
            request(client, f"{API_PREFIX}/identity/auth/logout", method="POST", token=token, expected=204)

    print("Smoke checks passed.")


if __name__ == "__main__":
    main()
