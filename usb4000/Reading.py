import datetime
import logging

log = logging.getLogger(__name__)

## 
# A single spectrum read from the device, plus enough context (timestamp,
# bus speed, wavelength axis) to interpret it.  Only the most recent Reading
# is kept by the driver; each scan iteration replaces the previous one.
class Reading:

    def clear(self):
        self.device_id     = None
        self.timestamp     = None
        self.spectrum      = None
        self.wavelengths   = None
        self.high_speed    = None
        self.session_count = 0      # can treat as reading_id

    def __str__(self):
        return "usb4000.Reading {device_id %s, spectrum %s, session_count %d, timestamp %s, high_speed %s}" % (
            self.device_id, 
            "None" if self.spectrum is None else ("%d values" % len(self.spectrum)),
            self.session_count,
            self.timestamp, 
            self.high_speed)

    def __init__(self, device_id=None):
        self.clear()

        self.device_id = str(device_id)

        # NOTE: this indicates when the acquisition STARTS, not ENDS
        self.timestamp = datetime.datetime.now()

    def pixels(self):
        return 0 if self.spectrum is None else len(self.spectrum)
