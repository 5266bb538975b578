################################################################################
#                                                                              #
#                           PolynomialRegression.py                            #
#                                                                              #
################################################################################
#                                                                              #
#  Least-squares polynomial fitting by Householder QR, after                   #
#  https://algs4.cs.princeton.edu/14analysis/PolynomialRegression.java         #
#                                                                              #
#  Used offline to generate wavelength calibration coefficients from known     #
#  emission lines (see scripts/fit-wavecal.py).  Has no dependency on the      #
#  rest of the driver.                                                         #
#                                                                              #
################################################################################

import logging

import numpy as np

from .errors import DimensionalityError, RankDeficiencyExhausted

log = logging.getLogger(__name__)

##
# Test data samples from "USB4000 Operating Instructions.pdf" page 15,
# (pixel, wavelength nm).  A cubic fit should yield:
#
# 0: 190.37722111132746
# 1:   0.36315951123072354
# 2:  -1.2463449040608586E-5
# 3:  -2.2475147642325247E-9
USB4000_REFERENCE_POINTS = [
    ( 175, 253.65), ( 296, 296.73), ( 312, 302.15), ( 342, 313.16), ( 402, 334.15),
    ( 490, 365.02), ( 604, 404.66), ( 613, 407.78), ( 694, 435.84), (1022, 546.07),
    (1116, 576.96), (1122, 579.07), (1491, 696.54), (1523, 706.72), (1590, 727.29),
    (1627, 738.40), (1669, 751.47),
]

class QRDecomposition:
    """
    QR decomposition of an m x n matrix (m >= n) by Householder reflections.

    The Householder vectors are left in the lower trapezoid of .qr, the strict
    upper triangle of .qr holds R, and the diagonal of R is kept separately in
    .rdiag.  The input matrix is copied, never modified.
    """

    def __init__(self, A):
        self.qr = np.array(A, dtype=float)
        (self.rows, self.cols) = self.qr.shape
        if self.rows < self.cols:
            raise DimensionalityError(f"QR requires rows >= cols ({self.rows} x {self.cols})")

        self.rdiag = np.zeros(self.cols)
        self.col_norms = np.array([QRDecomposition.norm(self.qr[:, k]) for k in range(self.cols)])

        qr = self.qr
        for k in range(self.cols):
            nrm = QRDecomposition.norm(qr[k:, k])
            if nrm != 0.0:
                # form k-th Householder vector, sign chosen to avoid cancellation
                if qr[k, k] < 0:
                    nrm = -nrm
                qr[k:, k] /= nrm
                qr[k, k] += 1.0

                # apply transformation to remaining columns
                for j in range(k + 1, self.cols):
                    s = -np.dot(qr[k:, k], qr[k:, j]) / qr[k, k]
                    qr[k:, j] += s * qr[k:, k]
            self.rdiag[k] = -nrm

    @staticmethod
    def norm(v):
        """ 2-norm without under/overflow: scale by the largest magnitude before squaring """
        scale = np.max(np.abs(v)) if len(v) else 0.0
        if scale == 0.0:
            return 0.0
        scaled = v / scale
        return float(scale * np.sqrt(np.dot(scaled, scaled)))

    def is_full_rank(self):
        """
        True if no diagonal element of R is zero.  Unlike an exact
        rdiag[k] == 0 test, an element counts as zero when it is within
        rounding error of the original column's norm (rows * cols * machine
        epsilon, relative): a dependent column such as a repeated abscissa
        leaves a residue of order eps rather than an exact zero.
        """
        eps = np.finfo(float).eps
        tolerance = self.col_norms * self.rows * self.cols * eps
        return bool(np.all(np.abs(self.rdiag) > tolerance))

    def solve(self, b):
        """
        Least-squares solution of A x = b.  b is copied, then overwritten with
        Q^T b, then back-substituted against R from the highest-order row up.
        """
        y = np.array(b, dtype=float)
        if len(y) != self.rows:
            raise DimensionalityError(f"right-hand side has {len(y)} rows, expected {self.rows}")

        qr = self.qr
        for k in range(self.cols):
            s = -np.dot(qr[k:, k], y[k:]) / qr[k, k]
            y[k:] += s * qr[k:, k]

        for k in range(self.cols - 1, -1, -1):
            y[k] /= self.rdiag[k]
            y[:k] -= y[k] * qr[:k, k]

        return y[:self.cols]

def vandermonde(x, degree):
    """ V[i][j] = x[i] ** j for j in 0..degree """
    x = np.asarray(x, dtype=float)
    return np.power(x[:, np.newaxis], np.arange(degree + 1, dtype=float))

def fit(points, degree: int) -> list[float]:
    """
    Least-squares polynomial through (x, y) points.

    If the Vandermonde matrix at the requested degree is rank-deficient (e.g.
    too few distinct x values), the degree is reduced one step at a time until
    it is not.

    @param points [in] sequence of (x, y) pairs (not modified)
    @param degree [in] requested polynomial order
    @returns coefficients, constant term first; length is the final degree + 1
    @throws DimensionalityError if there are fewer points than degree + 1
    @throws RankDeficiencyExhausted if no degree >= 0 is full rank
    """
    if degree < 0:
        raise DimensionalityError(f"degree must be >= 0 (not {degree})")
    if len(points) < degree + 1:
        raise DimensionalityError(f"{len(points)} points cannot determine a degree {degree} polynomial")

    xy = np.array(points, dtype=float)
    if xy.ndim != 2 or xy.shape[1] != 2:
        raise ValueError(f"points must be (x, y) pairs, not shape {xy.shape}")
    x = xy[:, 0]
    y = xy[:, 1].copy()

    requested = degree
    while True:
        qr = QRDecomposition(vandermonde(x, degree))
        if qr.is_full_rank():
            break

        log.debug("fit: Vandermonde matrix rank-deficient at degree %d (rdiag %s)", degree, qr.rdiag)
        degree -= 1
        if degree < 0:
            raise RankDeficiencyExhausted(f"no full-rank fit found for {len(points)} points")

    if degree != requested:
        log.info("fit: reduced degree from %d to %d", requested, degree)

    coeffs = qr.solve(y).tolist()
    log.debug("fit: degree %d coeffs %s", degree, coeffs)
    return coeffs

def evaluate(coeffs, x):
    """ value of the polynomial (constant term first) at x """
    return sum([coeffs[i] * pow(x, i) for i in range(len(coeffs))])

def residuals(points, coeffs):
    return [y - evaluate(coeffs, x) for (x, y) in points]
