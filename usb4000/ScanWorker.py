import threading
import logging

log = logging.getLogger(__name__)

##
# Background thread running exactly one Acquisition run (a scan loop or an
# info query).  All transport traffic for the session happens on this thread
# while it is alive; the caller's thread only flips ScanConfig fields and reads
# Acquisition.latest_reading.
class ScanWorker(threading.Thread):

    def __init__(self, acquisition, state):
        threading.Thread.__init__(self, name="ScanWorker", daemon=True)
        self.acquisition = acquisition
        self.state = state
        self.error = None

    def run(self):
        log.debug("ScanWorker: starting %s", self.state.name)
        self.error = self.acquisition._run(self.state)
        log.debug("ScanWorker: done (error %s)", self.error)
