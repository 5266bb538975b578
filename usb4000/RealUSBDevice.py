import usb
import usb.core
import usb.util
import logging

from .AbstractUSBDevice import AbstractUSBDevice
from .errors            import TransportError

log = logging.getLogger(__name__)

##
# pyusb implementation of the transport capability.  Opens the first device
# matching the profile's VID/PID, claims the profile's interface, and maps
# every pyusb failure onto TransportError.
class RealUSBDevice(AbstractUSBDevice):

    def __init__(self, profile, backend=None):
        self.profile = profile
        self.vid = profile.vid
        self.pid = profile.pid
        self.timeout_ms = profile.timeout_ms
        self.device = None

        log.debug(f"RealUSBDevice: looking for VID 0x{self.vid:04x} and PID 0x{self.pid:04x}")
        try:
            self.device = usb.core.find(idVendor=self.vid, idProduct=self.pid, backend=backend)
        except usb.core.USBError as exc:
            log.critical("Exception in find: %s", exc)
            log.info("Is the device available with libusb?")
            raise TransportError(f"unable to search for {self}") from exc

        if self.device is None:
            raise TransportError(f"no device found for {self}")

        self.bus = self.device.bus
        self.address = self.device.address

        try:
            self.device.set_configuration()
            usb.util.claim_interface(self.device, profile.interface)
        except usb.core.USBError as exc:
            log.critical("Hardware Failure in claimInterface: %s", exc)
            raise TransportError(f"unable to claim interface {profile.interface} of {self}") from exc

        log.info("RealUSBDevice: opened %s", self)

    def _require_device(self):
        if self.device is None:
            raise TransportError(f"{self} has been released")

    def send(self, endpoint, data):
        self._require_device()
        try:
            written = self.device.write(endpoint, data, timeout=self.timeout_ms)
        except usb.core.USBError as exc:
            raise TransportError(f"write to endpoint 0x{endpoint:02x} failed: {exc}") from exc
        if written != len(data):
            raise TransportError(f"wrote {written} of {len(data)} bytes to endpoint 0x{endpoint:02x}")

    def receive(self, endpoint, length):
        self._require_device()
        try:
            data = self.device.read(endpoint, length, timeout=self.timeout_ms)
        except usb.core.USBError as exc:
            raise TransportError(f"read from endpoint 0x{endpoint:02x} failed: {exc}") from exc
        if len(data) < length:
            raise TransportError(f"short read from endpoint 0x{endpoint:02x} (expected {length}, read {len(data)})")
        return bytes(data)

    def close(self):
        if self.device is None:
            return

        log.debug("RealUSBDevice: releasing interface")
        try:
            usb.util.release_interface(self.device, self.profile.interface)
            usb.util.dispose_resources(self.device)
        except usb.core.USBError as exc:
            log.warning("Failure in release interface: %s", exc)
            raise TransportError(f"unable to release {self}") from exc
        finally:
            self.device = None

    def __str__(self):
        if self.device is None:
            return "<RealUSBDevice 0x%04x:0x%04x>" % (self.vid, self.pid)
        return "<RealUSBDevice 0x%04x:0x%04x:%d:%d>" % (self.vid, self.pid, self.bus, self.address)

    def __repr__(self):
        return str(self)
