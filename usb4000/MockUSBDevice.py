import struct
import logging

from collections import deque

import numpy as np

from .AbstractUSBDevice import AbstractUSBDevice
from .CommandProtocol   import CommandProtocol
from .errors            import TransportError

log = logging.getLogger(__name__)

##
# Simulated USB4000 firmware behind the transport capability.  Commands sent
# to the command endpoint queue up the same replies the real firmware would
# produce; spectra are synthesized with a few emission lines on a noisy
# baseline and served in the same block layout as the hardware.
#
# Used by the unit tests, and by demo.py --virtual when no hardware is
# attached.  Every exchange is recorded in .history as (direction, endpoint,
# payload-or-length) so callers can verify ordering.
class MockUSBDevice(AbstractUSBDevice):

    PIXELS = 3840
    HIGH_SPEED_FLAG = 0x80

    # Hg/Ar reference lines from "USB4000 Operating Instructions" p15, as
    # (pixel, relative height)
    PEAKS = [ (175, 0.9), (296, 0.4), (312, 0.5), (342, 0.3), (402, 0.6),
              (490, 0.7), (604, 0.8), (613, 0.3), (694, 0.5), (1022, 1.0),
              (1116, 0.6), (1122, 0.6), (1491, 0.4), (1523, 0.5), (1590, 0.3),
              (1627, 0.3), (1669, 0.4) ]

    DEFAULT_INFO = {
        CommandProtocol.INFO_SERIAL_NUMBER  : "USB4C01234",
        CommandProtocol.INFO_WAVECAL_C0     : "190.3772211",
        CommandProtocol.INFO_WAVECAL_C1     : "0.3631595112",
        CommandProtocol.INFO_WAVECAL_C2     : "-1.24634490E-5",
        CommandProtocol.INFO_WAVECAL_C3     : "-2.24751476E-9",
        CommandProtocol.INFO_BENCH          : "H2 NONE 25",
        CommandProtocol.INFO_FIRMWARE_CONFIG: "USB4000 3.00",
    }

    def __init__(self, profile, high_speed=True, info=None, temperature_raw=0x1900, seed=0):
        self.profile = profile
        self.high_speed = high_speed
        self.info = dict(self.DEFAULT_INFO)
        if info:
            self.info.update(info)
        self.temperature_raw = temperature_raw
        self.rng = np.random.default_rng(seed)

        self.pending = {}
        self.history = []
        self.initialized = False
        self.closed = False
        self.frames_generated = 0

        # fault injection
        self.disconnected = False
        self.truncate_replies = False
        self.fail_after_frames = None

        self.cmd_dict = {
            CommandProtocol.CMD_INITIALIZE       : self.cmd_initialize,
            CommandProtocol.CMD_QUERY_INFO       : self.cmd_query_info,
            CommandProtocol.CMD_START_CAPTURE    : self.cmd_start_capture,
            CommandProtocol.CMD_READ_PCB_TEMP    : self.cmd_read_pcb_temp,
            CommandProtocol.CMD_QUERY_STATUS     : self.cmd_query_status,
        }

    def __str__(self):
        return "<MockUSBDevice 0x%04x:0x%04x %s>" % (self.profile.vid, self.profile.pid,
            "480Mbps" if self.high_speed else "12Mbps")

    # ##########################################################################
    # transport capability
    # ##########################################################################

    def send(self, endpoint, data):
        self.history.append(("send", endpoint, bytes(data)))
        if self.closed:
            raise TransportError("mock device has been closed")
        if self.disconnected:
            raise TransportError("mock device disconnected")
        if endpoint != self.profile.command_out:
            raise TransportError(f"endpoint 0x{endpoint:02x} is not an OUT endpoint")
        if len(data) < 1:
            raise TransportError("empty command")

        log.debug("MockUSBDevice received command %s", " ".join([f"{v:02x}" for v in data]))
        cmd_func = self.cmd_dict.get(data[0], None)
        if cmd_func is None:
            log.error("MockUSBDevice: unsupported command 0x%02x", data[0])
            return
        cmd_func(data)

    def receive(self, endpoint, length):
        self.history.append(("receive", endpoint, length))
        if self.closed:
            raise TransportError("mock device has been closed")
        if self.disconnected:
            raise TransportError("mock device disconnected")

        # full-speed spectra stream without an explicit trigger
        if (not self.high_speed and endpoint == self.profile.data_in_primary
                and not self.pending.get(endpoint)):
            self._queue_spectrum()

        blocks = self.pending.get(endpoint)
        if not blocks:
            raise TransportError(f"timeout reading endpoint 0x{endpoint:02x}")

        data = blocks.popleft()
        if len(data) < length:
            raise TransportError(f"short read from endpoint 0x{endpoint:02x} (expected {length}, read {len(data)})")
        return data[:length]

    def close(self):
        self.closed = True
        self.pending.clear()

    # ##########################################################################
    # simulated firmware
    # ##########################################################################

    def cmd_initialize(self, data):
        self.initialized = True
        self.pending.clear()

    def cmd_query_status(self, data):
        reply = bytearray(16)
        struct.pack_into("<H", reply, 0, self.PIXELS)
        reply[14] = self.HIGH_SPEED_FLAG if self.high_speed else 0x00
        self._reply(reply)

    def cmd_query_info(self, data):
        index = data[1] if len(data) > 1 else 0
        text = self.info.get(index, "")
        reply = bytearray(17)
        reply[0] = CommandProtocol.CMD_QUERY_INFO
        reply[1] = index
        encoded = text.encode("ascii")[:15]
        reply[2:2 + len(encoded)] = encoded
        self._reply(reply)

    def cmd_read_pcb_temp(self, data):
        reply = bytearray(3)
        reply[0] = 0x08
        struct.pack_into("<H", reply, 1, self.temperature_raw)
        self._reply(reply)

    def cmd_start_capture(self, data):
        self._queue_spectrum()

    # ##########################################################################
    # helpers
    # ##########################################################################

    def _reply(self, reply):
        if self.truncate_replies:
            reply = reply[:1]
        self.pending.setdefault(self.profile.command_in, deque()).append(bytes(reply))

    def generate_spectrum(self, pixels):
        """ Baseline plus Lorentzian-ish emission lines, clamped to uint16. """
        x = np.arange(pixels)
        spectrum = 1500 + self.rng.normal(0, 15, pixels)
        for (center, height) in self.PEAKS:
            spectrum += 40000 * height / (1 + ((x - center) / 2.5) ** 2)
        return np.clip(spectrum, 0, 0xffff).astype("<u2")

    def _queue_spectrum(self):
        self.frames_generated += 1
        if self.fail_after_frames is not None and self.frames_generated > self.fail_after_frames:
            log.debug("MockUSBDevice: simulating disconnect")
            self.disconnected = True
            return

        if self.high_speed:
            raw = self.generate_spectrum(4096).tobytes()
            self._queue_blocks(self.profile.data_in_secondary, raw[:4 * 512], 512)
            self._queue_blocks(self.profile.data_in_primary,   raw[4 * 512:], 512)
        else:
            raw = self.generate_spectrum(121 * 32).tobytes()
            self._queue_blocks(self.profile.data_in_primary, raw, 64)

    def _queue_blocks(self, endpoint, raw, block_len):
        blocks = self.pending.setdefault(endpoint, deque())
        for start in range(0, len(raw), block_len):
            blocks.append(raw[start:start + block_len])
