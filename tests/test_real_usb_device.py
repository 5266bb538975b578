"""Tests for the pyusb transport, with pyusb itself patched out."""

import unittest
from unittest import mock

import usb.core

from usb4000.RealUSBDevice import RealUSBDevice
from usb4000.USB4000Device import USB4000Device
from usb4000.DeviceProfile import DeviceProfile
from usb4000.errors        import TransportError

PROFILE = DeviceProfile.USB4000


def fake_device():
    device = mock.MagicMock()
    device.bus = 1
    device.address = 11
    return device


@mock.patch("usb.util.dispose_resources")
@mock.patch("usb.util.release_interface")
@mock.patch("usb.util.claim_interface")
@mock.patch("usb.core.find")
class TestRealUSBDevice(unittest.TestCase):

    def test_opens_first_match(self, find, claim, release, dispose):
        device = fake_device()
        find.return_value = device

        transport = RealUSBDevice(PROFILE)

        find.assert_called_once_with(idVendor=0x2457, idProduct=0x1022, backend=None)
        device.set_configuration.assert_called_once_with()
        claim.assert_called_once_with(device, 0)
        self.assertEqual(str(transport), "<RealUSBDevice 0x2457:0x1022:1:11>")

    def test_no_device(self, find, claim, release, dispose):
        find.return_value = None
        with self.assertRaises(TransportError):
            RealUSBDevice(PROFILE)
        claim.assert_not_called()

    def test_claim_failure(self, find, claim, release, dispose):
        find.return_value = fake_device()
        claim.side_effect = usb.core.USBError("busy")
        with self.assertRaises(TransportError):
            RealUSBDevice(PROFILE)

    def test_send(self, find, claim, release, dispose):
        device = fake_device()
        device.write.return_value = 1
        find.return_value = device

        RealUSBDevice(PROFILE).send(0x01, b"\xfe")
        device.write.assert_called_once_with(0x01, b"\xfe", timeout=1000)

    def test_short_write(self, find, claim, release, dispose):
        device = fake_device()
        device.write.return_value = 1
        find.return_value = device

        with self.assertRaises(TransportError):
            RealUSBDevice(PROFILE).send(0x01, b"\x05\x00")

    def test_receive(self, find, claim, release, dispose):
        device = fake_device()
        device.read.return_value = bytearray(b"\x08\x00\x19")
        find.return_value = device

        self.assertEqual(RealUSBDevice(PROFILE).receive(0x81, 3), b"\x08\x00\x19")
        device.read.assert_called_once_with(0x81, 3, timeout=1000)

    def test_short_read(self, find, claim, release, dispose):
        device = fake_device()
        device.read.return_value = bytearray(100)
        find.return_value = device

        with self.assertRaises(TransportError):
            RealUSBDevice(PROFILE).receive(0x82, 512)

    def test_timeout(self, find, claim, release, dispose):
        device = fake_device()
        device.read.side_effect = usb.core.USBTimeoutError("timeout")
        find.return_value = device

        with self.assertRaises(TransportError):
            RealUSBDevice(PROFILE).receive(0x86, 512)

    def test_close(self, find, claim, release, dispose):
        device = fake_device()
        find.return_value = device

        transport = RealUSBDevice(PROFILE)
        transport.close()
        transport.close()

        release.assert_called_once_with(device, 0)
        dispose.assert_called_once_with(device)
        self.assertIsNone(transport.device)

    def test_released_device_refuses_traffic(self, find, claim, release, dispose):
        find.return_value = fake_device()

        transport = RealUSBDevice(PROFILE)
        transport.close()

        with self.assertRaises(TransportError):
            transport.send(0x01, b"\x01")
        with self.assertRaises(TransportError):
            transport.receive(0x81, 16)

    def test_session_reopen_finds_device_again(self, find, claim, release, dispose):
        first = fake_device()
        second = fake_device()
        first.write.return_value = 1
        second.write.return_value = 1
        find.side_effect = [first, second]

        device = USB4000Device(profile=PROFILE)
        device.open()
        device.close()
        device.open()

        self.assertEqual(find.call_count, 2)
        release.assert_called_once_with(first, 0)
        first.write.assert_called_once_with(0x01, b"\x01", timeout=1000)
        second.write.assert_called_once_with(0x01, b"\x01", timeout=1000)
        self.assertTrue(device.connected)
        self.assertIs(device.transport.device, second)


if __name__ == "__main__":
    unittest.main()
