"""Raw record types for LSF command output.

Pydantic models representing one row of each command's tabular output,
keyed by the column names LSF prints in its header row. Values are kept as
strings; collectors apply the normalizers to turn them into numbers because
LSF uses ``-`` placeholders and unit suffixes in numeric columns.
"""

from pydantic import BaseModel, ConfigDict, Field


class _RawRow(BaseModel):
    model_config = ConfigDict(populate_by_name=True, frozen=True)


class RawBhostData(_RawRow):
    """One row of ``bhosts -w``."""

    host_name: str = Field(alias="HOST_NAME")
    status: str = Field(alias="STATUS")

    # Slot limits, "-" means no limit
    jl_u: str = Field("-", alias="JL/U")
    max: str = Field(alias="MAX")

    # Job slot counts
    njobs: str = Field(alias="NJOBS")
    run: str = Field(alias="RUN")
    ssusp: str = Field(alias="SSUSP")
    ususp: str = Field(alias="USUSP")
    rsv: str = Field("0", alias="RSV")


class RawQueueData(_RawRow):
    """One row of ``bqueues -w``."""

    queue_name: str = Field(alias="QUEUE_NAME")
    prio: str = Field(alias="PRIO")
    status: str = Field(alias="STATUS")

    # Slot limits, "-" means no limit
    max: str = Field(alias="MAX")
    jl_u: str = Field("-", alias="JL/U")
    jl_p: str = Field("-", alias="JL/P")
    jl_h: str = Field("-", alias="JL/H")

    # Job slot counts
    njobs: str = Field(alias="NJOBS")
    pend: str = Field(alias="PEND")
    run: str = Field(alias="RUN")
    susp: str = Field("0", alias="SUSP")
    rsv: str = Field("0", alias="RSV")


class RawLoadData(_RawRow):
    """One row of ``lsload -w``.

    Unavailable hosts only print name and status; the decoder pads the
    remaining columns with ``-``.
    """

    host_name: str = Field(alias="HOST_NAME")
    status: str

    # Run queue lengths
    r15s: str
    r1m: str
    r15m: str

    # Utilization (percentage), paging rate, login users, idle minutes
    ut: str
    pg: str
    ls: str
    it: str

    # Available space, unit suffixed
    tmp: str
    swp: str
    mem: str


class RawHostData(_RawRow):
    """One row of ``lshosts -w``.

    RESOURCES is free text, possibly containing spaces.
    """

    host_name: str = Field(alias="HOST_NAME")
    host_type: str = Field(alias="type")
    model: str
    cpuf: str
    ncpus: str
    maxmem: str
    maxswp: str
    server: str
    resources: str = Field("", alias="RESOURCES")


class RawJobData(_RawRow):
    """One row of ``bjobs -u all -w``.

    ``details`` holds the ragged tail of the row: EXEC_HOST (absent for
    pending jobs), JOB_NAME (may contain spaces) and SUBMIT_TIME.
    """

    job_id: str = Field(alias="JOBID")
    user: str = Field(alias="USER")
    stat: str = Field(alias="STAT")
    queue: str = Field(alias="QUEUE")
    from_host: str = Field(alias="FROM_HOST")
    details: str = Field("", alias="DETAILS")
