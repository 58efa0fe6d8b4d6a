"""Scheduled job runner tests."""

from __future__ import annotations

import pytest

import crm.jobs as jobs
from tests.conftest import TestSessionFactory


class TestJobs:

    def test_unknown_job_is_rejected(self):
        with pytest.raises(SystemExit):
            jobs.main(["payroll"])

    async def test_run_job_commits_and_returns_count(self, monkeypatch):
        calls = []

        async def fake_job(session, notifier):
            calls.append(notifier)
            return 3

        monkeypatch.setattr(jobs, "async_session_factory", TestSessionFactory)
        monkeypatch.setitem(jobs.JOBS, "renewals", fake_job)

        assert await jobs.run_job("renewals") == 3
        assert len(calls) == 1

    async def test_run_job_reraises(self, monkeypatch):
        async def broken_job(session, notifier):
            raise RuntimeError("boom")

        monkeypatch.setattr(jobs, "async_session_factory", TestSessionFactory)
        monkeypatch.setitem(jobs.JOBS, "overtime", broken_job)

        with pytest.raises(RuntimeError):
            await jobs.run_job("overtime")
