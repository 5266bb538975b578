##
# Metadata read from the spectrometer by an InfoQuery: identity, optical bench,
# firmware, bus speed, board temperature and wavelength calibration.
class SpectrometerInfo:

    def __init__(self):
        self.serial_number   = None
        self.grating         = None
        self.filter          = None
        self.slit_um         = None
        self.pixels          = None
        self.firmware_config = None
        self.high_speed      = None
        self.pcb_temp_degC   = None
        self.calibration     = None     # WavelengthCalibration

    def usb_speed(self):
        if self.high_speed is None:
            return None
        return "480 Mbps" if self.high_speed else "12 Mbps"

    def to_dict(self):
        return {
            "Serial Num":  self.serial_number,
            "Grating":     self.grating,
            "Filter":      self.filter,
            "Slit size":   None if self.slit_um is None else f"{self.slit_um} µm",
            "Pixel Count": self.pixels,
            "USB4000 cfg": self.firmware_config,
            "USB Speed":   self.usb_speed(),
            "PCB Temp":    None if self.pcb_temp_degC is None else f"{self.pcb_temp_degC:2.2f}° C",
            "Cal Coeffs":  None if self.calibration is None else list(self.calibration.coeffs),
        }

    def __str__(self):
        return "<SpectrometerInfo serial %s, pixels %s, %s>" % (self.serial_number, self.pixels, self.usb_speed())
