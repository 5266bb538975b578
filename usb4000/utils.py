# ##############################################################################
#                                                                              #
#                                   utils.py                                   #
#                                                                              #
# ##############################################################################

import logging
import math
import os

log = logging.getLogger(__name__)

##
# Direct power form rather than Horner: evaluation order is fixed, so the
# same pixel and coefficients always give bit-identical results.
def pixel_to_wavelength(x: int, coeffs: list[float]) -> float:
    wavelength = 0.0
    for i in range(len(coeffs)):
        wavelength += coeffs[i] * pow(x, i)
    return wavelength

## expand 3rd-order wavelength polynomial into array of wavelengths
def generate_wavelengths(pixels, coeffs):
    if coeffs is None or pixels == 0:
        return None
    return [pixel_to_wavelength(x, coeffs) for x in range(pixels)]

##
# Sanity check for wavelength coefficients read from a device or produced by
# a fit.  Rejects a missing or wrong-length set, any NaN, the [0, 1, 0, 0]
# pattern left in unprogrammed memory, and sets where every term is equal
# (blank 0xff pages read back as -1 or similar).
def coeffs_look_valid(coeffs, count=None) -> bool:
    if coeffs is None or len(coeffs) == 0:
        return False

    if count is not None and len(coeffs) != count:
        log.debug("expected %d coeffs, found %d", count, len(coeffs))
        return False

    if any(math.isnan(c) for c in coeffs):
        log.debug("NaN in coeffs %s", coeffs)
        return False

    identity = [0.0] * len(coeffs)
    if len(identity) > 1:
        identity[1] = 1.0
    if list(coeffs) == identity:
        log.debug("coeffs are the unprogrammed default")
        return False

    if len(coeffs) > 1 and len(set(coeffs)) == 1:
        log.debug("coeffs are all %s", coeffs[0])
        return False

    return True

##
# Keep only the last nbytes of the file at path (used to cap the size of an
# appended logfile between sessions).
def resize_file(path, nbytes):
    if not os.path.exists(path):
        return
    size = os.path.getsize(path)
    if size <= nbytes:
        return
    with open(path, "rb") as f:
        f.seek(size - nbytes)
        tail = f.read()
    with open(path, "wb") as f:
        f.write(tail)
