"""Apply Alembic migrations at start-up."""
import os
import sys
import subprocess
from pathlib import Path

from quickhost_api.logging_config import get_logger

logger = get_logger(__name__)


def get_alembic_dir() -> Path:
    """Directory holding alembic.ini (the project root)."""
    return Path(__file__).parent.parent


def ensure_migrations() -> None:
    """
    Run ``alembic upgrade head`` unless AUTO_MIGRATE=false.

    Runs in a subprocess because Alembic's async env drives its own event loop.
    """
    if os.getenv("AUTO_MIGRATE", "true").lower() == "false":
        logger.info("AUTO_MIGRATE=false, skipping migrations")
        return

    logger.info("Running database migrations...")

    try:
        result = subprocess.run(
            ["alembic", "upgrade", "head"],
            cwd=get_alembic_dir(),
            capture_output=True,
            text=True,
            timeout=60,
        )
    except subprocess.TimeoutExpired:
        logger.error("Migration timed out after 60s")
        sys.exit(1)
    except FileNotFoundError:
        logger.warning("alembic executable not found, skipping migrations")
        return

    if result.returncode != 0:
        logger.error(f"Migration failed: {result.stderr}")
        if os.getenv("REQUIRE_MIGRATIONS", "true").lower() == "true":
            sys.exit(1)
        return

    for line in (result.stdout + result.stderr).splitlines():
        if line.strip():
            logger.info(f"  {line}")
    logger.info("Migrations complete")
