#!/usr/bin/env python
################################################################################
#                               fit-wavecal.py                                 #
################################################################################
#                                                                              #
#  DESCRIPTION:  Generate wavelength calibration coefficients from a set of    #
#                (pixel, wavelength) reference points, e.g. the peaks of a     #
#                Hg/Ar lamp identified in a saved spectrum.                    #
#                                                                              #
#  INVOCATION:   $ python scripts/fit-wavecal.py                               #
#                     (fits the USB4000 manual's 17-point reference table)     #
#                $ python scripts/fit-wavecal.py --degree 3 peaks.csv          #
#                                                                              #
################################################################################

import sys
import logging
import argparse

from usb4000 import applog
from usb4000 import PolynomialRegression
from usb4000 import utils
from usb4000.CSVExport import CSVExport
from usb4000.errors    import USB4000Error

log = logging.getLogger(__name__)

def parse_args(argv):
    parser = argparse.ArgumentParser(description="least-squares wavelength calibration from reference points")
    parser.add_argument("pathname",    type=str, nargs="?", default=None, help="CSV of pixel,wavelength pairs (default: USB4000 manual table)")
    parser.add_argument("--degree",    type=int, default=3,       help="polynomial order (default 3)")
    parser.add_argument("--log-level", type=str, default="WARNING", help="logging level", choices=["DEBUG","INFO","WARNING","ERROR","CRITICAL"])
    return parser.parse_args(argv)

def main(argv=None):
    args = parse_args(argv)
    logger = applog.MainLogger(args.log_level, enable_stdout=False)

    if args.pathname:
        points = CSVExport.load_points(args.pathname)
    else:
        points = PolynomialRegression.USB4000_REFERENCE_POINTS

    try:
        coeffs = PolynomialRegression.fit(points, args.degree)
    except USB4000Error as exc:
        print(f"unable to fit {len(points)} points: {exc}")
        return 1
    finally:
        logger.close()

    if not utils.coeffs_look_valid(coeffs):
        print("warning: fitted coefficients look implausible (NaN, constant or identity)")

    if len(coeffs) != args.degree + 1:
        print(f"note: degree reduced from {args.degree} to {len(coeffs) - 1}")

    for i, coeff in enumerate(coeffs):
        print("%d: %s" % (i, coeff))

    worst = max([abs(r) for r in PolynomialRegression.residuals(points, coeffs)])
    print("max residual: %.4f" % worst)
    return 0

if __name__ == "__main__":
    sys.exit(main())
