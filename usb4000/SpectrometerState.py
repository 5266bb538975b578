import logging

from enum import Enum

log = logging.getLogger(__name__)

class RunState(Enum):
    """ state of an Acquisition; "running" means SCANNING or INFO_QUERY """
    IDLE       = "idle"
    SCANNING   = "scanning"
    INFO_QUERY = "info_query"
    STOPPED    = "stopped"

    def is_running(self):
        return self in (RunState.SCANNING, RunState.INFO_QUERY)

class RunMode(Enum):
    """ what the caller wants the acquisition loop to be doing """
    SCAN = "scan"
    INFO = "info"
    STOP = "stop"

class ScanConfig:
    """
    Volatile acquisition settings, owned and mutated by the caller.  The
    acquisition thread re-reads both fields at the top of every iteration.
    """

    # choices for a "Rate" menu: once, then 1, 5 or 10 Hz
    RATES_HZ = (0, 1, 5, 10)

    def __init__(self, rate_hz=0, mode=RunMode.SCAN):
        self.rate_hz = 0
        self.mode = mode
        self.set_rate(rate_hz)

    def set_rate(self, rate_hz):
        """ 0 = single shot, else scans per second """
        if rate_hz < 0:
            raise ValueError(f"scan rate must be >= 0 (not {rate_hz})")
        log.debug("ScanConfig: rate_hz -> %s", rate_hz)
        self.rate_hz = rate_hz

    def period_ms(self):
        return 0 if self.rate_hz <= 0 else 1000.0 / self.rate_hz

    def __str__(self):
        return "<ScanConfig rate_hz %s, mode %s>" % (self.rate_hz, self.mode.name)
