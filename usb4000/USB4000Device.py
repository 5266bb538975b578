import logging

from .WavelengthCalibration import WavelengthCalibration
from .SpectrometerInfo      import SpectrometerInfo
from .CommandProtocol       import CommandProtocol
from .FrameAssembler        import FrameAssembler
from .RealUSBDevice         import RealUSBDevice
from .DeviceProfile         import DeviceProfile
from .Reading               import Reading
from .errors                import TransportError
from . import utils

log = logging.getLogger(__name__)

##
# One session with one USB4000: the protocol-level object, comparable to a
# blocking single-spectrometer driver.  Exposes query(), capture_frame() and
# fetch_calibration(), plus a few conveniences built on them.  It has no
# threads and no UI hooks; Acquisition drives it from a worker thread and
# relays state changes to observers.
#
# The wavelength calibration is read from the device at most once per
# session (lazily, on first use) and forgotten on close().
class USB4000Device:

    def __init__(self, transport=None, profile: DeviceProfile = DeviceProfile.USB4000, device_id=None):
        """
        @param transport [in] an AbstractUSBDevice; if None, a RealUSBDevice is
               opened against profile on open()
        @param profile [in] USB identifiers and endpoint roles
        @param device_id [in] label copied into each Reading
        """
        self.transport = transport
        self.owns_transport = False
        self.profile = profile
        self.device_id = device_id if device_id is not None else "USB:0x%04x:0x%04x" % (profile.vid, profile.pid)

        self.connected = False
        self.status = None
        self.calibration = None
        self.session_reading_count = 0

    def __str__(self):
        return "<USB4000Device %s via %s>" % (self.device_id, self.transport)

    # ##########################################################################
    # Lifecycle
    # ##########################################################################

    def open(self):
        """ Claim the transport (if needed) and send INITIALIZE. """
        if self.transport is None:
            log.info("USB4000Device.open: opening %s", self.profile)
            self.transport = RealUSBDevice(self.profile)
            self.owns_transport = True

        CommandProtocol.send(self.transport, self.profile, CommandProtocol.INITIALIZE, label="INITIALIZE")
        self.connected = True
        log.info("USB4000Device.open: initialized %s", self.device_id)

    def close(self):
        """
        Ends the session; the cached calibration is discarded.  A transport
        opened by this session is released and forgotten, so the next open()
        finds the device again.  A caller-supplied transport is closed but
        kept, and stays unusable until the caller replaces it.
        """
        log.info("USB4000Device.close: closing %s", self.device_id)
        self.connected = False
        self.status = None
        self.calibration = None
        if self.transport is not None:
            try:
                self.transport.close()
            finally:
                if self.owns_transport:
                    self.transport = None
                    self.owns_transport = False

    def _require_open(self):
        if not self.connected or self.transport is None:
            raise TransportError(f"{self.device_id} is not open")

    # ##########################################################################
    # Protocol
    # ##########################################################################

    def query(self, cmd: bytes, reply_len: int, label: str = "") -> bytes:
        self._require_open()
        return CommandProtocol.query(self.transport, self.profile, cmd, reply_len, label=label)

    def get_status(self):
        reply = self.query(CommandProtocol.QUERY_STATUS, CommandProtocol.STATUS_REPLY_LEN, label="QUERY_STATUS")
        self.status = CommandProtocol.decode_status(reply)
        log.debug("get_status: %d pixels, %s", self.status.pixels, self.status.usb_speed())
        return self.status

    def get_info_string(self, index: int) -> str:
        reply = self.query(CommandProtocol.query_info_cmd(index), CommandProtocol.INFO_REPLY_LEN,
                           label="QUERY_INFO(%d)" % index)
        return CommandProtocol.decode_info_string(reply)

    def get_pcb_temperature_degC(self) -> float:
        reply = self.query(CommandProtocol.READ_PCB_TEMP, CommandProtocol.TEMP_REPLY_LEN, label="READ_PCB_TEMP")
        return CommandProtocol.decode_temperature(reply)

    def fetch_calibration(self) -> WavelengthCalibration:
        """ Read the wavecal from info slots 1-4 unless already cached this session. """
        if self.calibration is not None:
            return self.calibration

        coeffs = []
        for index in (CommandProtocol.INFO_WAVECAL_C0,
                      CommandProtocol.INFO_WAVECAL_C1,
                      CommandProtocol.INFO_WAVECAL_C2,
                      CommandProtocol.INFO_WAVECAL_C3):
            coeffs.append(CommandProtocol.decode_coefficient(self.get_info_string(index)))

        if not utils.coeffs_look_valid(coeffs, count=4):
            log.warning("fetch_calibration: %s has unprogrammed or implausible wavecal %s", self.device_id, coeffs)

        self.calibration = WavelengthCalibration.from_list(coeffs)
        log.info("fetch_calibration: %s", self.calibration)
        return self.calibration

    def capture_frame(self, high_speed: bool = None) -> list:
        """
        @param high_speed [in] bus mode; if None, taken from the last status
               query (querying status first if there hasn't been one)
        """
        self._require_open()
        if high_speed is None:
            if self.status is None:
                self.get_status()
            high_speed = self.status.high_speed
        return FrameAssembler.capture_frame(self.transport, self.profile, high_speed)

    # ##########################################################################
    # Conveniences
    # ##########################################################################

    def acquire_reading(self) -> Reading:
        """ capture_frame() wrapped in a Reading, with wavelengths if calibrated """
        reading = Reading(self.device_id)
        if self.status is None:
            self.get_status()
        reading.high_speed = self.status.high_speed
        reading.spectrum = self.capture_frame(self.status.high_speed)
        if self.calibration is not None:
            reading.wavelengths = self.calibration.generate_wavelengths(len(reading.spectrum))

        self.session_reading_count += 1
        reading.session_count = self.session_reading_count
        log.debug("acquire_reading: returning %s", reading)
        return reading

    def get_info(self) -> SpectrometerInfo:
        info = SpectrometerInfo()
        status = self.get_status()

        info.serial_number = self.get_info_string(CommandProtocol.INFO_SERIAL_NUMBER)
        (info.grating, info.filter, info.slit_um) = CommandProtocol.decode_bench(
            self.get_info_string(CommandProtocol.INFO_BENCH))
        info.pixels = status.pixels
        info.firmware_config = self.get_info_string(CommandProtocol.INFO_FIRMWARE_CONFIG)
        info.high_speed = status.high_speed
        info.pcb_temp_degC = self.get_pcb_temperature_degC()
        info.calibration = self.fetch_calibration()

        log.info("get_info: %s", info)
        return info
