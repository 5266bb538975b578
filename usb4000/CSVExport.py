import logging
import csv

log = logging.getLogger(__name__)

##
# Flat numeric-pair files.
#
# Spectra are saved as one "pixel,intensity" line per usable pixel, where the
# pixel index is relative to the start of the usable range (so the first
# line is always pixel 0, even though it is sensor pixel 22 on a USB4000).
#
# Reference points for wavelength calibration are read back from the same
# kind of file ("x,y" per line; blank lines and #comments ignored).
class CSVExport:

    @staticmethod
    def spectrum_to_csv(spectrum, start: int, end: int) -> str:
        if spectrum is None:
            raise ValueError("no spectrum to export")
        end = min(end, len(spectrum))
        lines = []
        for pixel in range(start, end):
            lines.append("%d,%d\n" % (pixel - start, spectrum[pixel]))
        return "".join(lines)

    @staticmethod
    def save(pathname, reading, profile):
        """ write the usable range of a Reading to pathname """
        text = CSVExport.spectrum_to_csv(reading.spectrum, profile.usable_start, profile.usable_end)
        with open(pathname, "w", encoding="utf-8", newline="") as outfile:
            outfile.write(text)
        log.info("saved %s (reading %d) to %s", reading.device_id, reading.session_count, pathname)

    @staticmethod
    def load_points(pathname) -> list:
        """ @returns list of (x, y) float tuples """
        points = []
        with open(pathname, encoding="utf-8", newline="") as infile:
            for row in csv.reader(infile):
                if not row or not row[0].strip() or row[0].lstrip().startswith("#"):
                    continue
                if len(row) < 2:
                    raise ValueError(f"{pathname}: expected x,y in {row}")
                points.append((float(row[0]), float(row[1])))
        log.debug("loaded %d points from %s", len(points), pathname)
        return points
