"""
CLI entrypoint for a one-off sync. Run from cron or by hand, e.g.:

  python -m app.sync          # all sources
  python -m app.sync edr      # one source

Exit status is 0 when every requested source succeeded, 1 otherwise.
"""

import asyncio
import logging
import sys

from app.core.config import get_settings
from app.core.database import SessionLocal
from app.schemas.sync import SOURCE_IDS, SyncAllResult
from app.services.sheets import SheetsAdapter
from app.services.sync_orchestrator import SyncOrchestrator

logging.basicConfig(
    level=logging.INFO,
    format="%(asctime)s %(levelname)s %(name)s %(message)s",
    datefmt="%Y-%m-%dT%H:%M:%SZ",
)
logger = logging.getLogger(__name__)


def main(argv: list[str] | None = None) -> int:
    """Run the requested sync and report per-source counts."""
    args = sys.argv[1:] if argv is None else argv
    source = args[0] if args else "all"
    if source != "all" and source not in SOURCE_IDS:
        logger.error("Unknown source %r; expected all, %s", source, ", ".join(SOURCE_IDS))
        return 1

    settings = get_settings()
    orchestrator = SyncOrchestrator(SheetsAdapter(settings), SessionLocal, settings)
    try:
        result = asyncio.run(orchestrator.run_sync(source))
    except Exception as e:
        logger.exception("Sync job failed: %s", e)
        return 1

    if isinstance(result, SyncAllResult):
        for s in SOURCE_IDS:
            r = getattr(result, s)
            logger.info("%s: success=%s count=%s duration_ms=%s error=%s", s, r.success, r.count, r.duration_ms, r.error)
        logger.info("Sync completed in %sms", result.total_duration_ms)
    else:
        logger.info(
            "%s: success=%s count=%s duration_ms=%s error=%s",
            source, result.success, result.count, result.duration_ms, result.error,
        )
    return 0 if result.success else 1


if __name__ == "__main__":
    sys.exit(main())
