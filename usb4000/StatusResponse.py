from dataclasses import dataclass

##
# Parsed reply to QUERY_STATUS (0xFE).  Only the fields the driver acts on are
# decoded; the firmware packs integration time, trigger mode etc into the
# remaining bytes.
@dataclass(frozen=True)
class StatusResponse:
    pixels: int
    high_speed: bool

    def usb_speed(self):
        return "480 Mbps" if self.high_speed else "12 Mbps"
