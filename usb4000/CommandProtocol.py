import struct
import logging

from .StatusResponse import StatusResponse
from .errors         import ProtocolDecodeError

log = logging.getLogger(__name__)

##
# Encoding and decoding of the USB4000 command set.  Commands are 1-2 bytes
# written to the command OUT endpoint; each query is answered by exactly one
# fixed-format packet on the command-response IN endpoint.
#
# @verbatim
#   0x01          initialize
#   0xFE          query status   (16 bytes: [0:2] pixels LE16, [14] 0x80 if USB 2.0 high-speed)
#   0x05 index    query info     (17 bytes: 2 header bytes + NUL-terminated ASCII)
#   0x6C          read PCB temp  (3 bytes: [1:3] raw ADC LE16)
#   0x09          request spectrum (high-speed)
# @endverbatim
#
# Nothing here retries.  A reply that is too short to hold the documented
# fields raises ProtocolDecodeError rather than being padded.
class CommandProtocol:

    CMD_INITIALIZE      = 0x01
    CMD_QUERY_INFO      = 0x05
    CMD_START_CAPTURE   = 0x09
    CMD_READ_PCB_TEMP   = 0x6C
    CMD_QUERY_STATUS    = 0xFE

    INFO_SERIAL_NUMBER   = 0
    INFO_WAVECAL_C0      = 1
    INFO_WAVECAL_C1      = 2
    INFO_WAVECAL_C2      = 3
    INFO_WAVECAL_C3      = 4
    INFO_BENCH           = 15
    INFO_FIRMWARE_CONFIG = 16

    STATUS_REPLY_LEN    = 16
    INFO_REPLY_LEN      = 17
    TEMP_REPLY_LEN      = 3

    HIGH_SPEED_FLAG     = 0x80
    DEGC_PER_COUNT      = 0.003906

    INITIALIZE    = bytes([CMD_INITIALIZE])
    QUERY_STATUS  = bytes([CMD_QUERY_STATUS])
    READ_PCB_TEMP = bytes([CMD_READ_PCB_TEMP])
    START_CAPTURE = bytes([CMD_START_CAPTURE])

    @staticmethod
    def query_info_cmd(index: int) -> bytes:
        return bytes([CommandProtocol.CMD_QUERY_INFO, index & 0xff])

    # ##########################################################################
    # exchanges
    # ##########################################################################

    @staticmethod
    def send(transport, profile, cmd: bytes, label: str = ""):
        """ Write a command which has no reply. """
        prefix = "" if not label else ("%s: " % label)
        log.debug("%ssend: [%s]", prefix, CommandProtocol.to_hex(cmd))
        transport.send(profile.command_out, cmd)

    @staticmethod
    def query(transport, profile, cmd: bytes, reply_len: int, label: str = "") -> bytes:
        """
        Send cmd on the command endpoint, then perform exactly one receive on
        the command-response endpoint and return the raw reply.

        @throws TransportError from the transport
        @throws ProtocolDecodeError if the reply is shorter than reply_len
        """
        prefix = "" if not label else ("%s: " % label)
        log.debug("%squery: [%s]", prefix, CommandProtocol.to_hex(cmd))
        transport.send(profile.command_out, cmd)
        reply = bytes(transport.receive(profile.command_in, reply_len))
        log.debug("%squery: [%s] = [%s]", prefix, CommandProtocol.to_hex(cmd), CommandProtocol.to_hex(reply))

        if len(reply) < reply_len:
            raise ProtocolDecodeError(f"{prefix}reply too short (expected {reply_len}, received {len(reply)})")
        return reply

    # ##########################################################################
    # decoders
    # ##########################################################################

    @staticmethod
    def decode_info_string(reply: bytes) -> str:
        """
        Skip the 2-byte header, then read ASCII up to the first NUL (or the
        end of the buffer).
        """
        if reply is None or len(reply) < 2:
            raise ProtocolDecodeError(f"info reply too short ({0 if reply is None else len(reply)} bytes)")

        payload = bytes(reply[2:])
        end = payload.find(0)
        if end >= 0:
            payload = payload[:end]

        try:
            return payload.decode("ascii")
        except UnicodeDecodeError as exc:
            raise ProtocolDecodeError(f"info reply is not ASCII: [{CommandProtocol.to_hex(reply)}]") from exc

    @staticmethod
    def decode_temperature(reply: bytes) -> float:
        """ bytes 1-2 are the raw PCB thermistor ADC (LE16) """
        if reply is None or len(reply) < CommandProtocol.TEMP_REPLY_LEN:
            raise ProtocolDecodeError(f"temperature reply too short ({0 if reply is None else len(reply)} bytes)")
        (raw,) = struct.unpack_from("<H", reply, 1)
        return raw * CommandProtocol.DEGC_PER_COUNT

    @staticmethod
    def decode_status(reply: bytes) -> StatusResponse:
        if reply is None or len(reply) < 15:
            raise ProtocolDecodeError(f"status reply too short ({0 if reply is None else len(reply)} bytes)")
        (pixels,) = struct.unpack_from("<H", reply, 0)
        return StatusResponse(pixels=pixels, high_speed=(reply[14] == CommandProtocol.HIGH_SPEED_FLAG))

    @staticmethod
    def decode_bench(text: str):
        """
        The bench info string (index 15) holds grating, filter and slit width
        separated by whitespace, e.g. "H2 NONE 25".

        @returns tuple of (grating, filter, slit)
        """
        tok = text.split()
        if len(tok) < 3:
            raise ProtocolDecodeError(f"unable to parse bench configuration [{text}]")
        return (tok[0], tok[1], tok[2])

    @staticmethod
    def decode_coefficient(text: str) -> float:
        try:
            return float(text.strip())
        except ValueError as exc:
            raise ProtocolDecodeError(f"invalid calibration coefficient [{text}]") from exc

    @staticmethod
    def to_hex(data) -> str:
        return " ".join([f"{v:02x}" for v in data])
