################################################################################
#                                                                              #
#                                  errors.py                                   #
#                                                                              #
################################################################################

##
# Exceptions raised by the driver.  Nothing in here is retried automatically:
# a caller wanting a second attempt must issue the request again.

class USB4000Error(Exception):
    """ root of everything raised by usb4000 """
    pass

class TransportError(USB4000Error):
    """
    The USB exchange itself failed: device disconnected, timed-out, or
    returned fewer bytes than requested.
    """
    pass

class ProtocolDecodeError(USB4000Error):
    """
    The device answered, but the answer didn't look like what the USB4000
    firmware is documented to send (short status block, unparseable
    coefficient, odd-length spectrum buffer etc).
    """
    pass

class DimensionalityError(USB4000Error):
    """ Regression requested with fewer sample points than coefficients. """
    pass

class RankDeficiencyExhausted(USB4000Error):
    """ Regression could not find any polynomial degree >= 0 with full rank. """
    pass
