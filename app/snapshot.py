"""
CLI entrypoint for the daily snapshot. Run from cron, e.g.:

  python -m app.snapshot

Or daily: 5 0 * * * cd /path/to/posture && .venv/bin/python -m app.snapshot
"""

import logging
import sys

from app.core.config import get_settings
from app.core.database import SessionLocal
from app.services.risk_config import RiskConfigStore
from app.services.snapshot import run_snapshot_job

logging.basicConfig(
    level=logging.INFO,
    format="%(asctime)s %(levelname)s %(name)s %(message)s",
    datefmt="%Y-%m-%dT%H:%M:%SZ",
)
logger = logging.getLogger(__name__)


def main() -> int:
    """Capture today's snapshot with the risk configuration from the environment."""
    settings = get_settings()
    try:
        snapshot = run_snapshot_job(SessionLocal, RiskConfigStore.from_settings(settings), settings)
        logger.info(
            "Snapshot completed: date=%s overall_risk_score=%s",
            snapshot.date.isoformat(),
            snapshot.overall_risk_score,
        )
        return 0
    except Exception as e:
        logger.exception("Snapshot job failed: %s", e)
        return 1


if __name__ == "__main__":
    sys.exit(main())
