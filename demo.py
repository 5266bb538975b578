#!/usr/bin/env python
################################################################################
#                                   demo.py                                    #
################################################################################
#                                                                              #
#  DESCRIPTION:  Simple cmd-line demo to confirm that USB4000.PY is working    #
#                and can connect to and acquire from a USB4000.                #
#                                                                              #
#  INVOCATION:   $ python -u demo.py --rate 5 --max 20 --outfile scan.csv      #
#                $ python -u demo.py --info                                    #
#                $ python -u demo.py --virtual        (no hardware required)   #
#                                                                              #
################################################################################

import sys
import time
import numpy
import signal
import logging
import argparse

import usb4000
from usb4000 import applog
from usb4000.SpectrometerState import ScanConfig
from usb4000.MockUSBDevice     import MockUSBDevice
from usb4000.USB4000Device     import USB4000Device
from usb4000.DeviceProfile     import DeviceProfile
from usb4000.Acquisition       import Acquisition
from usb4000.CSVExport         import CSVExport
from usb4000.errors            import USB4000Error

log = logging.getLogger(__name__)

class USB4000Demo:

    ############################################################################
    #                                                                          #
    #                               Lifecycle                                  #
    #                                                                          #
    ############################################################################

    def __init__(self, argv=None):
        self.device      = None
        self.acquisition = None
        self.logger      = None
        self.exiting     = False
        self.reading_count = 0
        self.profile     = DeviceProfile.USB4000

        self.args = self.parse_args(argv)

        if self.args.log_level != "NEVER":
            self.logger = applog.MainLogger(self.args.log_level, logfile=self.args.logfile)
        log.info("USB4000.PY version %s", usb4000.__version__)

    ############################################################################
    #                                                                          #
    #                             Command-Line Args                            #
    #                                                                          #
    ############################################################################

    def parse_args(self, argv=None):
        parser = argparse.ArgumentParser(description="Simple demo to acquire spectra from a USB4000")
        parser.add_argument("--log-level",  type=str,   default="INFO", help="logging level", choices=["DEBUG","INFO","WARNING","ERROR","CRITICAL","NEVER"])
        parser.add_argument("--logfile",    type=str,   default=None,   help="log pathname (default usb4000_applog.txt)")
        parser.add_argument("--rate",       type=float, default=0,      help="scans per second (default 0, single shot)")
        parser.add_argument("--max",        type=int,   default=0,      help="max spectra to acquire when rate > 0 (default 0, unlimited)")
        parser.add_argument("--outfile",    type=str,   default=None,   help="save last spectrum as pixel,intensity CSV (e.g. path/to/spectrum.csv)")
        parser.add_argument("--info",       action="store_true",        help="display spectrometer info and exit")
        parser.add_argument("--virtual",    action="store_true",        help="use a simulated spectrometer")
        parser.add_argument("--full-speed", action="store_true",        help="simulate a 12Mbps bus (with --virtual)")
        parser.add_argument("--version",    action="store_true",        help="display USB4000.PY version and exit")

        args = parser.parse_args(argv)
        if args.version:
            print("USB4000.PY %s" % usb4000.__version__)
            sys.exit(0)

        if args.rate < 0:
            parser.error("--rate must be >= 0")

        args.log_level = args.log_level.upper()

        return args

    ############################################################################
    #                                                                          #
    #                              USB Device                                  #
    #                                                                          #
    ############################################################################

    def connect(self):
        transport = None
        if self.args.virtual:
            transport = MockUSBDevice(self.profile, high_speed=not self.args.full_speed)

        self.device = USB4000Device(transport=transport, profile=self.profile)
        try:
            self.device.open()
        except USB4000Error as exc:
            print(f"unable to open USB4000: {exc}")
            return False

        self.acquisition = Acquisition(
            device        = self.device,
            config        = ScanConfig(rate_hz=self.args.rate),
            callback      = self.process_reading,
            info_callback = self.process_info)
        self.acquisition.add_observer(self.run_state_changed)
        return True

    ############################################################################
    #                                                                          #
    #                               Run-Time Loop                              #
    #                                                                          #
    ############################################################################

    def run(self):
        if self.args.info:
            self.acquisition.query_info(blocking=True)
            return

        self.acquisition.start_scan()
        while not self.exiting and self.acquisition.is_running():
            time.sleep(0.1)
        self.acquisition.stop()
        self.acquisition.join()

        if self.args.outfile and self.acquisition.latest_reading is not None:
            CSVExport.save(self.args.outfile, self.acquisition.latest_reading, self.profile)

    def run_state_changed(self, running, error):
        log.info("acquisition %s", "running" if running else "stopped")
        if error is not None:
            print(f"acquisition failed: {error}")

    def process_info(self, info):
        for label, value in info.to_dict().items():
            print("%-12s %s" % (label + ":", value))

    def process_reading(self, reading):
        self.reading_count += 1

        spectrum = reading.spectrum[self.profile.usable_start:self.profile.usable_end]
        print("%s: %4d  Pixels: %4d  Min: %8.2f  Max: %8.2f  Avg: %8.2f  StdDev: %8.2f  (%.2f, %.2fnm)" % (
            reading.timestamp,
            reading.session_count,
            len(reading.spectrum),
            numpy.amin(spectrum),
            numpy.amax(spectrum),
            numpy.mean(spectrum),
            numpy.std(spectrum),
            reading.wavelengths[self.profile.usable_start] if reading.wavelengths else 0,
            reading.wavelengths[self.profile.usable_end - 1] if reading.wavelengths else 0))

        if self.args.max > 0 and self.reading_count >= self.args.max:
            log.debug("max spectra reached, stopping")
            self.acquisition.stop()

################################################################################
# main()
################################################################################

def signal_handler(signal, frame):
    print('\rInterrupted by Ctrl-C...shutting down', end=' ')
    if demo:
        demo.exiting = True

def clean_shutdown():
    log.debug("Exiting")
    if demo:
        if demo.acquisition:
            demo.acquisition.close()

        if demo.logger:
            log.debug("closing logger")
            demo.logger.close()
            applog.explicit_log_close()
    sys.exit()

demo = None
if __name__ == "__main__":
    signal.signal(signal.SIGINT, signal_handler)

    demo = USB4000Demo()
    if demo.connect():
        try:
            demo.run()
        except USB4000Error:
            log.critical("demo.run caught exception", exc_info=1)

    clean_shutdown()
