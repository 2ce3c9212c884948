"""
Local host operations: data directories, the database service, memory size.
"""

import logging
import re
import subprocess
import time
from typing import Callable, List

from . import config
from .retry import fixed_sleeper, retry_loop

logger = logging.getLogger(__name__)

MAX_RETRIES_START_SERVICE = 10
START_SERVICE_SLEEP_SECONDS = 10

# Couchbase refuses to start unless these exist under the var directory,
# which starts out empty when mounted as a volume.
VAR_SUBDIRECTORIES = [
    "lib/couchbase",
    "lib/couchbase/config",
    "lib/couchbase/data",
    "lib/couchbase/stats",
    "lib/couchbase/logs",
    "lib/moxi",
]

_MEM_TOTAL = re.compile(r"Mem:\s*(\d+)")


class HostError(Exception):
    """A local command failed or produced output we cannot read."""


def parse_total_memory_mb(output: str) -> int:
    """
    Total memory from `free -m` output, which looks like:

                     total       used       free     shared    buffers     cached
        Mem:          3768       2601       1166          0          4       1877
    """
    match = _MEM_TOTAL.search(output)
    if match is None:
        raise HostError(f"Could not extract Mem total from {output!r}")
    return int(match.group(1))


class HostServices:
    def __init__(self, service_name: str = config.SERVICE_NAME,
                 var_dir: str = config.VAR_DIR,
                 sleep: Callable[[float], None] = time.sleep):
        self.service_name = service_name
        self.var_dir = var_dir
        self._sleep = sleep

    def prepare_var_directory(self):
        logger.info(f"Preparing {self.var_dir}")
        self._run(["mkdir", "-p"] + VAR_SUBDIRECTORIES, cwd=self.var_dir)
        self._run(["chown", "-R", "couchbase:couchbase", self.var_dir])

    def start_service(self):
        """Start the database service and wait until it reports running."""
        def worker() -> bool:
            self._run(["service", self.service_name, "start"])
            if self.service_running():
                logger.info(f"{self.service_name} service running")
                return True
            logger.info(f"{self.service_name} service not running yet")
            return False

        retry_loop(
            worker,
            fixed_sleeper(MAX_RETRIES_START_SERVICE, START_SERVICE_SLEEP_SECONDS),
            sleep=self._sleep,
            description="StartService",
        )

    def service_running(self) -> bool:
        # `service x status` exits non-zero when the service is down; that is
        # an answer, not an error.
        try:
            result = subprocess.run(
                ["service", self.service_name, "status"],
                capture_output=True,
                text=True,
            )
        except OSError as e:
            raise HostError(f"Unable to query {self.service_name} status: {e}") from e
        if result.returncode != 0:
            return False
        logger.info(f"Checking status returned output: {result.stdout.strip()}")
        return "is running" in result.stdout

    def total_memory_mb(self) -> int:
        return parse_total_memory_mb(self._run(["free", "-m"]))

    def _run(self, cmd: List[str], cwd: str = None) -> str:
        try:
            result = subprocess.run(cmd, cwd=cwd, capture_output=True, text=True, check=True)
        except (OSError, subprocess.CalledProcessError) as e:
            raise HostError(f"{' '.join(cmd)} failed: {e}") from e
        logger.debug(f"{cmd[0]} output: {result.stdout.strip()}")
        return result.stdout
