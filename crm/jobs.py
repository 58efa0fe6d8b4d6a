"""Scheduled scans, run from cron.

    python -m crm.jobs renewals   # daily
    python -m crm.jobs overtime   # every 10 minutes in the evening

Jobs run outside the web process, so socket pushes are dropped; the alerts
are still persisted and show up in each user's inbox.
"""

import argparse
import asyncio

import structlog

from crm.attendance.service import WorkSessionService
from crm.database import async_session_factory, engine
from crm.logging import setup_logging
from crm.realtime.port import NullPort
from crm.subscriptions.service import SubscriptionService

logger = structlog.get_logger(__name__)

JOBS = {
    "renewals": SubscriptionService.send_renewal_reminders,
    "overtime": WorkSessionService.check_overtime,
}


async def run_job(name: str) -> int:
    job = JOBS[name]
    async with async_session_factory() as session:
        try:
            sent = await job(session, NullPort())
            await session.commit()
        except Exception:
            await session.rollback()
            logger.exception("job_failed", job=name)
            raise
    await engine.dispose()
    logger.info("job_finished", job=name, sent=sent)
    return sent


def main(argv=None) -> None:
    parser = argparse.ArgumentParser(description="Run a scheduled CRM job.")
    parser.add_argument("job", choices=sorted(JOBS))
    args = parser.parse_args(argv)
    setup_logging()
    asyncio.run(run_job(args.job))


if __name__ == "__main__":
    main()
