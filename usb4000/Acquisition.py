import threading
import logging
import time

from .SpectrometerState import RunState, RunMode, ScanConfig
from .ScanWorker        import ScanWorker
from .errors            import USB4000Error

log = logging.getLogger(__name__)

##
# Drives a USB4000Device through single-shot or repeating scans, and one-shot
# info queries, from a background ScanWorker.
#
# @par State machine
#
# @verbatim
#   IDLE|STOPPED --start_scan()--> SCANNING --(rate == 0, stop(), or error)--> STOPPED
#   IDLE|STOPPED --query_info()--> INFO_QUERY --> IDLE   (STOPPED on error)
# @endverbatim
#
# At most one run is active per session.  start_scan() or query_info() while a
# run is active does nothing and returns False; in particular observers get no
# second "started" notification.
#
# @par Observers
#
# Observers are callables taking (running: bool, error: Exception or None).
# They are called synchronously on the worker thread when a run starts and
# when it ends.  A run that aborts on any exception (TransportError,
# ProtocolDecodeError, or one raised by a consumer callback) ends in STOPPED
# and passes the exception with the final notification; there is no separate
# error channel, and no retry.
#
# The final notification is delivered while the run lock is held, so a
# start_scan() from another thread waits for it and observers never see the
# next run begin before the previous one ends.
#
# @par Cancellation
#
# stop() is cooperative: it is noticed at the top of the next iteration, so a
# capture already in flight always completes, as does the rate-limiting sleep.
class Acquisition:

    def __init__(self, device, config: ScanConfig = None, callback=None, info_callback=None):
        """
        @param device [in] a USB4000Device (opened on the first run if necessary)
        @param config [in] ScanConfig shared with the caller
        @param callback [out] optional, called with each new Reading
        @param info_callback [out] optional, called with the SpectrometerInfo
               produced by query_info()
        """
        self.device        = device
        self.config        = config if config is not None else ScanConfig()
        self.callback      = callback
        self.info_callback = info_callback

        self.observers      = []
        self.state          = RunState.IDLE
        self.lock           = threading.RLock()
        self.worker         = None

        self.latest_reading = None
        self.latest_info    = None
        self.last_error     = None

    # ##########################################################################
    # Observers
    # ##########################################################################

    def add_observer(self, observer):
        self.observers.append(observer)

    def remove_observer(self, observer):
        if observer in self.observers:
            self.observers.remove(observer)

    def _notify(self, running, error=None):
        log.debug("notifying %d observers: running %s, error %s", len(self.observers), running, error)
        for observer in list(self.observers):
            try:
                observer(running, error)
            except Exception:
                log.error("observer %s failed", observer, exc_info=1)

    # ##########################################################################
    # Public API
    # ##########################################################################

    def is_running(self):
        return self.state.is_running()

    def start_scan(self, blocking=False):
        """
        Begin scanning at config.rate_hz (0 = one spectrum, then stop).

        @param blocking [in] run on the calling thread, and raise any
               TransportError / ProtocolDecodeError after observers are told
        @returns False if a run was already active (nothing is started)
        """
        return self._start(RunState.SCANNING, RunMode.SCAN, blocking)

    def query_info(self, blocking=False):
        """ Read SpectrometerInfo (available afterwards as .latest_info). """
        return self._start(RunState.INFO_QUERY, RunMode.INFO, blocking)

    def stop(self):
        log.debug("stop requested")
        self.config.mode = RunMode.STOP

    def join(self, timeout=None):
        worker = self.worker
        if worker is not None:
            worker.join(timeout)

    def close(self):
        """ Stop any run, wait for it, and end the device session. """
        self.stop()
        self.join()
        self.device.close()
        with self.lock:
            self.state = RunState.IDLE

    # ##########################################################################
    # Run loop
    # ##########################################################################

    def _start(self, state, mode, blocking):
        with self.lock:
            if self.state.is_running():
                log.debug("ignoring %s request while %s", state.name, self.state.name)
                return False
            self.state = state
            self.config.mode = mode
            self.last_error = None

        if blocking:
            error = self._run(state)
            if error is not None:
                raise error
        else:
            self.worker = ScanWorker(self, state)
            self.worker.start()
        return True

    def _run(self, state):
        """ @returns the exception which aborted the run, or None """
        self._notify(True)

        error = None
        try:
            self._prepare()
            if state == RunState.SCANNING:
                self._scan_loop()
            else:
                self._info()
        except USB4000Error as exc:
            log.critical("acquisition aborted: %s", exc, exc_info=1)
            error = exc
        except Exception as exc:
            log.critical("acquisition failed: %s", exc, exc_info=1)
            error = exc
        finally:
            with self.lock:
                if error is None and state == RunState.INFO_QUERY:
                    self.state = RunState.IDLE
                else:
                    self.state = RunState.STOPPED
                self.last_error = error
                self._notify(False, error)
        return error

    def _prepare(self):
        if not self.device.connected:
            self.device.open()
        self.device.fetch_calibration()
        self.device.get_status()

    def _scan_loop(self):
        while self.config.mode == RunMode.SCAN:
            start_time = time.monotonic()

            reading = self.device.acquire_reading()
            self.latest_reading = reading
            if self.callback is not None:
                self.callback(reading)

            rate_hz = self.config.rate_hz
            if rate_hz <= 0:
                log.debug("single-shot scan complete")
                break

            elapsed_ms = (time.monotonic() - start_time) * 1000
            delay_ms = 1000.0 / rate_hz - elapsed_ms
            if delay_ms > 0:
                log.debug("sleeping %d ms (%d ms already passed)", delay_ms, elapsed_ms)
                time.sleep(delay_ms / 1000.0)

        log.debug("scan loop exiting (mode %s)", self.config.mode.name)

    def _info(self):
        info = self.device.get_info()
        self.latest_info = info
        if self.info_callback is not None:
            self.info_callback(info)
