"""Seed or migrate the admin users document on the configured backend."""

from __future__ import annotations

import argparse
import asyncio
import logging
from dataclasses import dataclass, field

from app.core.config import get_settings
from app.core.document_store import build_document_store
from app.modules.identity.directory import DEFAULT_ADMIN_ACCOUNTS, AdminDirectory

logger = logging.getLogger(__name__)


@dataclass(slots=True)
class BootstrapStats:
    document_name: str
    seeded: bool = False
    accounts: list[tuple[str, str, bool]] = field(default_factory=list)


async def _run_bootstrap(*, allow_production: bool) -> BootstrapStats:
    settings = get_settings()
    if settings.app_env.lower() in {"prod", "production"} and not allow_production:
        raise RuntimeError("Refusing to bootstrap admin users in production without --allow-production")
    if settings.document_store_backend != "http":
        logger.warning(
            "DOCUMENT_STORE_BACKEND=%s keeps admin users in process memory; nothing is written to the backend",
            settings.document_store_backend,
        )

    store = build_document_store(settings)
    try:
        existing = await store.load(settings.admin_users_document)
        directory = AdminDirectory(store, document_name=settings.admin_users_document)
        await directory.reload()
    finally:
        await store.close()

    return BootstrapStats(
        document_name=settings.admin_users_document,
        seeded=not existing,
        accounts=[(account.username, account.role, account.is_active) for account in directory.accounts],
    )


def _build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(
        description=(
            "Load the admin users document, seeding the default accounts when it is "
            "empty and hashing any legacy plaintext passwords."
        ),
    )
    parser.add_argument(
        "--allow-production",
        action="store_true",
        help="Allow running even when APP_ENV is production/prod.",
    )
    return parser


def _print_summary(stats: BootstrapStats) -> None:
    print(f"Admin directory '{stats.document_name}' ready.")
    print(f"- Default accounts seeded: {stats.seeded}")
    for username, role, is_active in stats.accounts:
        print(f"- {username} ({role}){'' if is_active else ' [inactive]'}")
    if stats.seeded:
        print("")
        print("Default credentials (change them right away):")
        for seed in DEFAULT_ADMIN_ACCOUNTS:
            print(f"- {seed['username']} / {seed['password']}")


def main() -> int:
    parser = _build_parser()
    args = parser.parse_args()
    logging.basicConfig(level=logging.INFO, format="%(levelname)s %(message)s")

    try:
        stats = asyncio.run(_run_bootstrap(allow_production=args.allow_production))
    except Exception as exc:
        print(f"Admin bootstrap failed: {exc}")
        return 1

    _print_summary(stats)
    return 0


if __name__ == "__main__":
    raise SystemExit(main())
