from dataclasses import dataclass

##
# Immutable description of how to talk to one model of spectrometer: USB
# identifiers, the endpoint assigned to each role, and which pixels of the
# detector actually carry usable signal.
#
# @verbatim
#   Bus: 000 Device 011: Vendor 0x2457, Product 0x1022
#     interface: 0
#       BLK add: 0x01 (OUT) pkt: 512    // Commands (output)
#       BLK add: 0x82 (IN)  pkt: 512    // Spectral Data In
#       BLK add: 0x86 (IN)  pkt: 512    // Spectral Data In
#       BLK add: 0x81 (IN)  pkt: 512    // Command responses
# @endverbatim
#
# Other Ocean Optics models sharing the same command set can be supported by
# instantiating another profile rather than editing module constants.
@dataclass(frozen=True)
class DeviceProfile:
    vid: int                = 0x2457
    pid: int                = 0x1022
    interface: int          = 0

    command_out: int        = 0x01
    command_in: int         = 0x81
    data_in_primary: int    = 0x82
    data_in_secondary: int  = 0x86

    # pixels outside [usable_start, usable_end) are optically masked or
    # otherwise uninteresting
    usable_start: int       = 22
    usable_end: int         = 3670

    timeout_ms: int         = 1000

    def usable_pixels(self):
        return self.usable_end - self.usable_start

    def __str__(self):
        return "<DeviceProfile 0x%04x:0x%04x iface %d>" % (self.vid, self.pid, self.interface)

DeviceProfile.USB4000 = DeviceProfile()
