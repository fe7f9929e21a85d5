"""Tests for ragged bjobs rows in the lsfjob collector.

The happy paths (running, pending and parallel jobs, counts per queue and
status) are tested via test_collector.py.
"""

from unittest.mock import MagicMock

from lsf_prometheus_exporter.collectors import bjobs

HEADER = b"JOBID   USER    STAT  QUEUE      FROM_HOST   EXEC_HOST   JOB_NAME   SUBMIT_TIME\n"


def _fetch(mock_runner: MagicMock, outputs: dict, rows: bytes) -> list[bjobs.JobMetric]:
    outputs["bjobs"] = HEADER + rows
    return bjobs.fetch(mock_runner)


def test_job_name_with_spaces(mock_runner: MagicMock, outputs: dict):
    """Everything between the exec host and submit time is the job name."""
    jobs = _fetch(
        mock_runner,
        outputs,
        b"42 carol RUN normal login01 node07 python train.py --epochs 3 Oct 19 08:30\n",
    )
    assert jobs[0].job_name == "python train.py --epochs 3"
    assert jobs[0].exec_host == "node07"
    assert jobs[0].submit_time == "Oct 19 08:30"


def test_suspended_pending_job_has_no_exec_host(mock_runner: MagicMock, outputs: dict):
    jobs = _fetch(mock_runner, outputs, b"43 carol PSUSP normal login01 held_job Oct 19 08:31\n")
    assert jobs[0].exec_host == ""
    assert jobs[0].job_name == "held_job"
    assert jobs[0].status_code == 2


def test_truncated_row_is_skipped(mock_runner: MagicMock, outputs: dict):
    """A row too short to hold a submit time is dropped, later rows survive."""
    jobs = _fetch(
        mock_runner,
        outputs,
        b"44 dave RUN normal login01 node01 Oct\n"
        b"45 dave RUN normal login01 node02 ok_job Oct 19 08:32\n",
    )
    assert [j.job_id for j in jobs] == ["45"]


def test_job_exited_while_pending_has_no_exec_host(mock_runner: MagicMock, outputs: dict):
    """A finished job that was never dispatched keeps its name intact."""
    jobs = _fetch(mock_runner, outputs, b"2001 carol EXIT normal master01 myjob Oct 19 10:00\n")
    assert jobs[0].exec_host == ""
    assert jobs[0].job_name == "myjob"
    assert jobs[0].status_code == 7


def test_finished_dispatched_job_keeps_exec_host(mock_runner: MagicMock, outputs: dict):
    jobs = _fetch(
        mock_runner,
        outputs,
        b"2002 carol DONE normal master01 node03 myjob Oct 19 10:00\n",
    )
    assert jobs[0].exec_host == "node03"
    assert jobs[0].job_name == "myjob"


def test_submit_time_with_year(mock_runner: MagicMock, outputs: dict):
    """LSB_DISPLAY_YEAR appends the year to SUBMIT_TIME."""
    jobs = _fetch(
        mock_runner,
        outputs,
        b"2003 carol RUN normal master01 node04 myjob Oct 19 10:00 2025\n"
        b"2004 carol PEND normal master01 other job  Oct  9 10:05 2025\n",
    )
    assert (jobs[0].exec_host, jobs[0].job_name) == ("node04", "myjob")
    assert jobs[0].submit_time == "Oct 19 10:00 2025"
    assert (jobs[1].exec_host, jobs[1].job_name) == ("", "other job")
    assert jobs[1].submit_time == "Oct 9 10:05 2025"


def test_row_without_job_name_is_skipped(mock_runner: MagicMock, outputs: dict):
    jobs = _fetch(mock_runner, outputs, b"2005 carol PEND normal master01 Oct 19 10:00\n")
    assert jobs == []


def test_row_missing_positional_columns_is_skipped(mock_runner: MagicMock, outputs: dict):
    jobs = _fetch(mock_runner, outputs, b"46 erin RUN\n")
    assert jobs == []


def test_unknown_status_maps_to_zero():
    job = bjobs.JobMetric(job_id="1", status="BOGUS")
    assert job.status_code == 0


def test_no_unfinished_jobs_message_on_its_own(mock_runner: MagicMock, outputs: dict):
    outputs["bjobs"] = b"\nNo unfinished job found\n"
    assert bjobs.fetch(mock_runner) == []
