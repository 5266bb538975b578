##
# The transport capability consumed by the rest of the driver.  Everything
# above this layer only ever sends bytes to an endpoint, or receives a fixed
# number of bytes from an endpoint.
#
# Implementations are blocking, and are not safe to share between threads:
# one request in flight per handle.
class AbstractUSBDevice:

    def __init__(self):
        pass

    def send(self, endpoint, data):
        """ @throws TransportError on disconnect or timeout """
        pass

    def receive(self, endpoint, length):
        """ @throws TransportError if fewer than length bytes arrive before timeout """
        pass

    def close(self):
        pass
