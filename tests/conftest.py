"""Shared fixtures: recorded LSF command output and a fake command runner."""

from unittest.mock import MagicMock

import pytest

from lsf_prometheus_exporter import lsfcli
from lsf_prometheus_exporter.errors import ExecutionError

BHOSTS_OUTPUT = b"""\
HOST_NAME          STATUS       JL/U    MAX  NJOBS    RUN  SSUSP  USUSP    RSV  \n\
lsfmaster01        ok              -     16      4      4      0      0      0
compute001         closed_full     -      8      8      6      1      1      0   \n\
compute002         unavail         -      -      0      0      0      0      0
"""

BQUEUES_OUTPUT = b"""\
QUEUE_NAME      PRIO STATUS          MAX JL/U JL/P JL/H NJOBS  PEND   RUN  SUSP
owners           43  Open:Active       -    -    -    -     0     0     0     0
priority         43  Open:Active     100    -    -    -     6     2     4     0
normal           30  Closed:Inact      -    -    -    -    12     4     8     0
"""

LSLOAD_OUTPUT = b"""\
HOST_NAME       status  r15s   r1m  r15m   ut    pg  ls    it   tmp   swp   mem
lsfmaster01         ok   0.0   0.1   0.2   3%   0.0   1     0   35G    4G  6.9G
compute001        busy  *6.1   5.8   5.5  98%   1.2   0  1440   20G    2G  512M
compute002     unavail
"""

LSHOSTS_OUTPUT = b"""\
HOST_NAME                     type       model  cpuf ncpus maxmem maxswp server RESOURCES
lsfmaster01                 X86_64    Intel_E5  12.5    16  62.7G   3.9G    Yes (mg)
compute001                  X86_64      PC6000 116.1    64 251.5G     4G    Yes (linux gpu)
client01                   UNKNOWN UNKNOWN_AUTO_DETECT -     -      -      -     No ()
"""

LSID_OUTPUT = b"""\
IBM Spectrum LSF Standard 10.1.0.13, Jan 20 2023
Copyright International Business Machines Corp. 1992, 2016.
US Government Users Restricted Rights - Use, duplication or disclosure restricted by GSA ADP Schedule Contract with IBM Corp.

My cluster name is cluster1
My master name is lsfmaster01
"""

BJOBS_OUTPUT = b"""\
JOBID   USER    STAT  QUEUE      FROM_HOST   EXEC_HOST   JOB_NAME   SUBMIT_TIME
1001    alice   RUN   normal     lsfmaster01 compute001  sleep 100  Oct 19 10:00
1002    bob     PEND  priority   lsfmaster01             train_model Oct 19 10:05
1003    alice   RUN   normal     lsfmaster01 4*compute002 mpi_job   Oct 18 22:13
"""

COMMAND_OUTPUTS = {
    "bhosts": BHOSTS_OUTPUT,
    "bqueues": BQUEUES_OUTPUT,
    "lsload": LSLOAD_OUTPUT,
    "lshosts": LSHOSTS_OUTPUT,
    "lsid": LSID_OUTPUT,
    "bjobs": BJOBS_OUTPUT,
}


@pytest.fixture
def outputs() -> dict[str, bytes]:
    """Mutable copy of the recorded output per executable."""
    return dict(COMMAND_OUTPUTS)


@pytest.fixture
def mock_runner(outputs: dict[str, bytes]) -> MagicMock:
    """Mock CommandRunner answering from ``outputs``.

    An executable mapped to an exception instance raises it instead.
    """
    runner = MagicMock(spec=lsfcli.CommandRunner)

    def run(executable: str, *args: str) -> bytes:
        result = outputs.get(executable)
        if result is None:
            raise ExecutionError([executable, *args], "executable file not found")
        if isinstance(result, Exception):
            raise result
        return result

    runner.run.side_effect = run
    return runner
