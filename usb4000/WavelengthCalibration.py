import logging

from . import utils

log = logging.getLogger(__name__)

##
# The third-order pixel-to-wavelength polynomial stored in the spectrometer
# (info slots 1-4):
#
#   nm = c0 + c1 * px + c2 * px^2 + c3 * px^3
class WavelengthCalibration:

    def __init__(self, c0, c1, c2, c3):
        self.coeffs = (float(c0), float(c1), float(c2), float(c3))

    @classmethod
    def from_list(cls, coeffs):
        if len(coeffs) != 4:
            raise ValueError(f"expected 4 wavelength coefficients, not {len(coeffs)}")
        return cls(*coeffs)

    def to_wavelength(self, pixel: int) -> float:
        return utils.pixel_to_wavelength(pixel, self.coeffs)

    def generate_wavelengths(self, pixels: int):
        return utils.generate_wavelengths(pixels, self.coeffs)

    def __getitem__(self, i):
        return self.coeffs[i]

    def __len__(self):
        return len(self.coeffs)

    def __eq__(self, other):
        return isinstance(other, WavelengthCalibration) and self.coeffs == other.coeffs

    def __repr__(self):
        return "WavelengthCalibration(%s)" % ", ".join([repr(c) for c in self.coeffs])
