import logging
import datetime

from .CommandProtocol import CommandProtocol
from .errors          import ProtocolDecodeError

log = logging.getLogger(__name__)

##
# Turns a sequence of fixed-size bulk reads into one spectrum.
#
# USB bulk transfers are capped at the endpoint's max packet size, so a full
# USB4000 spectrum has to be collected as many fixed-size blocks:
#
# @verbatim
#   480 Mbps:   0x09, then  4 x 512 bytes from the secondary endpoint (0x86)
#                     then 12 x 512 bytes from the primary endpoint   (0x82)
#                     = 8192 bytes = 4096 pixels
#   12 Mbps:    121 x 64 bytes from the primary endpoint (0x82)
#                     = 7744 bytes = 3872 pixels
# @endverbatim
#
# The high-speed read order matches the firmware, which fills the two
# endpoints as interleaved streams; reading them in any other order loses or
# misaligns data.  The 12 Mbps layout has not been verified on hardware.
class FrameAssembler:

    HIGH_SPEED_SECONDARY_BLOCKS = 4
    HIGH_SPEED_PRIMARY_BLOCKS   = 12
    HIGH_SPEED_BLOCK_LEN        = 512

    FULL_SPEED_BLOCKS           = 121
    FULL_SPEED_BLOCK_LEN        = 64

    @staticmethod
    def read_plan(profile, high_speed: bool):
        """ @returns list of (endpoint, block_len) in the order they must be read """
        if high_speed:
            return ([ (profile.data_in_secondary, FrameAssembler.HIGH_SPEED_BLOCK_LEN) ] * FrameAssembler.HIGH_SPEED_SECONDARY_BLOCKS +
                    [ (profile.data_in_primary,   FrameAssembler.HIGH_SPEED_BLOCK_LEN) ] * FrameAssembler.HIGH_SPEED_PRIMARY_BLOCKS)
        return [ (profile.data_in_primary, FrameAssembler.FULL_SPEED_BLOCK_LEN) ] * FrameAssembler.FULL_SPEED_BLOCKS

    @staticmethod
    def expected_pixels(high_speed: bool) -> int:
        if high_speed:
            blocks = FrameAssembler.HIGH_SPEED_SECONDARY_BLOCKS + FrameAssembler.HIGH_SPEED_PRIMARY_BLOCKS
            return blocks * FrameAssembler.HIGH_SPEED_BLOCK_LEN // 2
        return FrameAssembler.FULL_SPEED_BLOCKS * FrameAssembler.FULL_SPEED_BLOCK_LEN // 2

    @staticmethod
    def capture_frame(transport, profile, high_speed: bool) -> list:
        """
        Trigger (if high-speed) and read one complete spectrum.

        @returns list of unsigned 16-bit pixel values
        @throws TransportError on any failed or short read
        @throws ProtocolDecodeError if the assembled buffer has an odd length
        """
        start_time = datetime.datetime.now()

        if high_speed:
            CommandProtocol.send(transport, profile, CommandProtocol.START_CAPTURE, label="START_CAPTURE")

        buf = bytearray()
        for (endpoint, block_len) in FrameAssembler.read_plan(profile, high_speed):
            block = transport.receive(endpoint, block_len)
            buf.extend(block)

        spectrum = FrameAssembler.decode_spectrum(buf)

        log.debug("capture_frame: read %d bytes (%d pixels) in %d ms (%s)",
            len(buf), len(spectrum),
            round((datetime.datetime.now() - start_time).total_seconds() * 1000, 0),
            "480 Mbps" if high_speed else "12 Mbps")
        return spectrum

    @staticmethod
    def decode_spectrum(buf) -> list:
        if len(buf) % 2 != 0:
            raise ProtocolDecodeError(f"spectrum buffer has odd length ({len(buf)} bytes)")

        # iterate across the received bytes as two interleaved arrays, even
        # bytes (LSB) and odd bytes (MSB)
        return [int(i | (j << 8)) for i, j in zip(buf[::2], buf[1::2])]
