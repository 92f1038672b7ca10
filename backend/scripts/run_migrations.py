"""Run Alembic migrations once the record store answers.

Deploys call this before starting the API so the skill graph, usage and
course directory tables match the models the app expects.
"""

from __future__ import annotations

import argparse
import logging
import os
import sys
import time
from pathlib import Path
from typing import Optional

from alembic import command
from alembic.config import Config
from sqlalchemy import create_engine, text
from sqlalchemy.engine import Engine
from sqlalchemy.exc import OperationalError, SQLAlchemyError
from sqlalchemy.orm import Session

from skillpath.config import get_settings
from skillpath.repositories.usage import usage_records

LOGGER = logging.getLogger("skillpath.migrations")
DATABASE_URL_ENV = "SKILLPATH_DATABASE_URL"
DEFAULT_TIMEOUT = int(os.getenv("SKILLPATH_DB_MIGRATION_TIMEOUT", "60"))
DEFAULT_POLL_INTERVAL = float(os.getenv("SKILLPATH_DB_MIGRATION_POLL_INTERVAL", "3"))
SCRIPT_DIR = Path(__file__).resolve().parent
BACKEND_ROOT = SCRIPT_DIR.parent


def parse_args(argv: Optional[list[str]] = None) -> argparse.Namespace:
    parser = argparse.ArgumentParser(description="Upgrade the SkillPath schema after the database is reachable.")
    parser.add_argument(
        "--revision",
        default=os.getenv("SKILLPATH_DB_MIGRATION_REVISION", "head"),
        help="Alembic revision to upgrade to (default: head).",
    )
    parser.add_argument(
        "--timeout",
        type=int,
        default=DEFAULT_TIMEOUT,
        help=f"How long to keep probing the database, in seconds (default: {DEFAULT_TIMEOUT}).",
    )
    parser.add_argument(
        "--poll-interval",
        type=float,
        default=DEFAULT_POLL_INTERVAL,
        help=f"Pause between probes, in seconds (default: {DEFAULT_POLL_INTERVAL}).",
    )
    parser.add_argument(
        "--config",
        default=str(BACKEND_ROOT / "alembic.ini"),
        help="Alembic ini file to load.",
    )
    parser.add_argument(
        "--wait-only",
        action="store_true",
        help="Only wait for the database; do not upgrade.",
    )
    parser.add_argument(
        "--skip-seed",
        action="store_true",
        help="Do not seed the default usage plan after upgrading.",
    )
    return parser.parse_args(argv)


def get_alembic_config(config_path: str) -> Config:
    config = Config(config_path)
    config.set_main_option("script_location", str(BACKEND_ROOT / "alembic"))
    return config


def resolve_database_url(config: Config) -> str:
    """Prefer the environment over a placeholder or empty ``sqlalchemy.url``."""
    url = config.get_main_option("sqlalchemy.url")
    if url and "%(" not in url:
        return url
    env_url = os.getenv(DATABASE_URL_ENV)
    if not env_url:
        raise RuntimeError(f"{DATABASE_URL_ENV} must be set before running migrations.")
    config.set_main_option("sqlalchemy.url", env_url)
    return env_url


def wait_for_database(database_url: str, *, timeout: int, poll_interval: float) -> None:
    """Probe with ``SELECT 1`` until it succeeds or ``timeout`` elapses."""
    deadline = time.monotonic() + timeout
    engine: Optional[Engine] = None
    last_error: Optional[Exception] = None
    attempts = 0

    try:
        engine = create_engine(database_url, future=True, pool_pre_ping=True)
        while time.monotonic() < deadline:
            attempts += 1
            try:
                with engine.connect() as connection:
                    connection.execute(text("SELECT 1"))
                LOGGER.info("Database reachable after %s probe(s).", attempts)
                return
            except OperationalError as exc:
                last_error = exc
                LOGGER.warning("Database not ready yet (probe %s): %s", attempts, exc)
            except SQLAlchemyError as exc:
                last_error = exc
                LOGGER.error("Readiness probe %s failed permanently: %s", attempts, exc)
                break
            time.sleep(poll_interval)
    finally:
        if engine is not None:
            engine.dispose()

    raise RuntimeError(f"Database unreachable after {attempts} probe(s).") from last_error


def seed_default_plan(database_url: str) -> str:
    """Create the configured default plan if it is missing; returns its name."""
    settings = get_settings()
    engine = create_engine(database_url, future=True)
    try:
        with Session(engine) as session:
            plan = usage_records.ensure_plan(
                session, settings.default_plan_name, settings.default_plan_monthly_tokens
            )
            session.commit()
            LOGGER.info("Default plan %s allows %s tokens per month.", plan.name, plan.monthly_token_limit)
            return plan.name
    finally:
        engine.dispose()


def run_migrations(
    revision: str,
    *,
    timeout: int,
    poll_interval: float,
    config: Optional[Config] = None,
    wait_only: bool = False,
    seed: bool = True,
) -> None:
    config = config or get_alembic_config(str(BACKEND_ROOT / "alembic.ini"))
    database_url = resolve_database_url(config)
    wait_for_database(database_url, timeout=timeout, poll_interval=poll_interval)
    if wait_only:
        return
    LOGGER.info("Upgrading schema to %s", revision)
    command.upgrade(config, revision)
    LOGGER.info("Schema is at %s.", revision)
    if seed:
        seed_default_plan(database_url)


def main(argv: Optional[list[str]] = None) -> int:
    logging.basicConfig(
        level=os.getenv("SKILLPATH_DB_MIGRATION_LOG_LEVEL", "INFO"),
        format="%(asctime)s %(levelname)s [%(name)s] %(message)s",
    )
    args = parse_args(argv)
    try:
        run_migrations(
            args.revision,
            timeout=args.timeout,
            poll_interval=args.poll_interval,
            config=get_alembic_config(args.config),
            wait_only=args.wait_only,
            seed=not args.skip_seed,
        )
    except Exception as exc:  # noqa: BLE001
        LOGGER.exception("Schema upgrade aborted: %s", exc)
        return 1
    return 0


if __name__ == "__main__":
    sys.exit(main())
