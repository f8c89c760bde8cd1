"""Host telemetry read straight from procfs and sysfs"""

import glob
import os
import time
from datetime import datetime, timezone
from typing import Dict, Optional, Tuple

from ..core.catalog import TelemetryData
from ..utils.exceptions import BackendError

PROC_STAT = "/proc/stat"
PROC_MEMINFO = "/proc/meminfo"
THERMAL_ZONE = "/sys/class/thermal/thermal_zone0/temp"
HWMON_GLOB = "/sys/class/hwmon/hwmon*/temp1_input"

CPU_SAMPLE_INTERVAL = 0.1  # seconds between /proc/stat reads


def read_cpu_times(path: str = PROC_STAT) -> Tuple[int, int]:
    """Return (idle, total) jiffies of the aggregate cpu line"""
    with open(path) as f:
        for line in f:
            if line.startswith("cpu "):
                values = [int(v) for v in line.split()[1:]]
                # idle + iowait
                idle = values[3] + (values[4] if len(values) > 4 else 0)
                return idle, sum(values)
    raise BackendError(f"no aggregate cpu line in {path}")


def cpu_percent(before: Tuple[int, int], after: Tuple[int, int]) -> float:
    idle = after[0] - before[0]
    total = after[1] - before[1]
    if total <= 0:
        return 0.0
    return round(100.0 * (total - idle) / total, 1)


def read_meminfo(path: str = PROC_MEMINFO) -> Dict[str, int]:
    """Parse /proc/meminfo into a dict of byte counts"""
    info: Dict[str, int] = {}
    with open(path) as f:
        for line in f:
            key, _, rest = line.partition(":")
            parts = rest.split()
            if not parts:
                continue
            try:
                value = int(parts[0])
            except ValueError:
                continue
            if len(parts) > 1 and parts[1].lower() == "kb":
                value *= 1024
            info[key.strip()] = value
    return info


def read_cpu_temp() -> float:
    """CPU temperature in celsius, 0.0 where no sensor is exposed"""
    candidates = [THERMAL_ZONE] + sorted(glob.glob(HWMON_GLOB))
    for path in candidates:
        try:
            with open(path) as f:
                return round(int(f.read().strip()) / 1000.0, 1)
        except (OSError, ValueError):
            continue
    return 0.0


def collect_telemetry(
    docker_running: bool = False,
    sample_interval: Optional[float] = None,
    disk_path: str = "/",
) -> TelemetryData:
    """
    Take one telemetry sample of the host

    Args:
        docker_running: Liveness of the container backend, reported as-is
        sample_interval: Seconds between the two CPU samples
        disk_path: Filesystem to report free/total space for

    Returns:
        TelemetryData

    Raises:
        BackendError: procfs could not be read
    """
    interval = CPU_SAMPLE_INTERVAL if sample_interval is None else sample_interval
    try:
        before = read_cpu_times()
        time.sleep(interval)
        after = read_cpu_times()

        mem = read_meminfo()
        total = mem.get("MemTotal", 0)
        available = mem.get("MemAvailable", mem.get("MemFree", 0))
        used = max(total - available, 0)

        st = os.statvfs(disk_path)
    except OSError as e:
        raise BackendError(f"failed to read system stats: {e}")

    return TelemetryData(
        timestamp=datetime.now(timezone.utc).isoformat(),
        cpu_usage=cpu_percent(before, after),
        cpu_temp=read_cpu_temp(),
        ram_usage=round(100.0 * used / total, 1) if total else 0.0,
        ram_total=total,
        ram_used=used,
        disk_free=st.f_bavail * st.f_frsize,
        disk_total=st.f_blocks * st.f_frsize,
        docker_running=docker_running,
    )
