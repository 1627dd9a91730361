from __future__ import annotations

import logging
import sys

from apscheduler.schedulers.blocking import BlockingScheduler
from apscheduler.triggers.cron import CronTrigger
from apscheduler.triggers.interval import IntervalTrigger

from ..db.session import session_scope
from ..services.enrichment import enrich_all_tenants
from ..services.indexer import index_all_tenants
from ..services.minutes_sync import sync_all_tenants


logger = logging.getLogger(__name__)


def run_index_job() -> None:
    with session_scope() as session:
        stats = index_all_tenants(session)
    logger.info("Indexed documents: %s", stats)


def run_sync_job() -> None:
    with session_scope() as session:
        stats = sync_all_tenants(session)
    logger.info("Synced minutes: %s", stats)

    with session_scope() as session:
        stats = enrich_all_tenants(session)
    logger.info("Enriched minutes: %s", stats)


def run_once() -> None:
    run_index_job()
    run_sync_job()


def configure_scheduler() -> BlockingScheduler:
    scheduler = BlockingScheduler(timezone="UTC")
    scheduler.add_job(run_index_job, CronTrigger(hour=3, minute=0), max_instances=1, coalesce=True)
    scheduler.add_job(run_sync_job, IntervalTrigger(hours=1), max_instances=1, coalesce=True)
    return scheduler


def main() -> None:
    logging.basicConfig(level=logging.INFO, handlers=[logging.StreamHandler(sys.stdout)])

    if len(sys.argv) > 1 and sys.argv[1] == "run-once":
        logger.info("Running ingest worker once")
        run_once()
        return

    scheduler = configure_scheduler()
    logger.info("Starting ingest worker scheduler")
    scheduler.start()


if __name__ == "__main__":
    main()
