"""Reconciliation job status and manual triggers."""

from __future__ import annotations

import datetime
from typing import Annotated

from fastapi import APIRouter, Depends, HTTPException, status
from pydantic import BaseModel

from learnsync.api.dependencies import get_scheduler
from learnsync.services.scheduler import JobReport, JobStatus, ReconciliationScheduler

router = APIRouter(prefix="/v1/jobs", tags=["jobs"])

Scheduler = Annotated[ReconciliationScheduler, Depends(get_scheduler)]


class SkippedStudentOut(BaseModel):
    student_id: str
    cause: str


class JobReportOut(BaseModel):
    job: str
    started_at: datetime.datetime
    finished_at: datetime.datetime
    students_processed: int
    students_skipped: int
    records_pruned: int
    skipped: list[SkippedStudentOut]


class JobStatusOut(BaseModel):
    name: str
    cron: str
    running: bool
    runs: int
    overlaps_skipped: int
    last_started_at: datetime.datetime | None
    last_finished_at: datetime.datetime | None
    last_outcome: str | None
    next_run_at: datetime.datetime | None
    last_report: JobReportOut | None


def _report_out(report: JobReport) -> JobReportOut:
    return JobReportOut(
        job=report.job,
        started_at=report.started_at,
        finished_at=report.finished_at,
        students_processed=report.students_processed,
        students_skipped=report.students_skipped,
        records_pruned=report.records_pruned,
        skipped=[
            SkippedStudentOut(student_id=str(s.student_id), cause=repr(s.cause))
            for s in report.skipped
        ],
    )


def _status_out(s: JobStatus) -> JobStatusOut:
    return JobStatusOut(
        name=s.name,
        cron=s.cron,
        running=s.running,
        runs=s.runs,
        overlaps_skipped=s.overlaps_skipped,
        last_started_at=s.last_started_at,
        last_finished_at=s.last_finished_at,
        last_outcome=s.last_outcome,
        next_run_at=s.next_run_at,
        last_report=_report_out(s.last_report) if s.last_report else None,
    )


@router.get("", response_model=list[JobStatusOut])
async def list_jobs(scheduler: Scheduler) -> list[JobStatusOut]:
    return [_status_out(s) for s in scheduler.job_statuses()]


@router.post("/{name}/run", response_model=JobReportOut)
async def run_job(name: str, scheduler: Scheduler) -> JobReportOut:
    report = await scheduler.run(name)
    if report is None:
        raise HTTPException(
            status_code=status.HTTP_409_CONFLICT, detail=f"job {name} is already running"
        )
    return _report_out(report)
