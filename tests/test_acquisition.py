"""Tests for the Acquisition state machine and its worker thread."""

import time
import threading
import unittest

from stubs import RecordingObserver

from usb4000.SpectrometerState import RunState, RunMode, ScanConfig
from usb4000.USB4000Device     import USB4000Device
from usb4000.MockUSBDevice     import MockUSBDevice
from usb4000.DeviceProfile     import DeviceProfile
from usb4000.Acquisition       import Acquisition
from usb4000.errors            import ProtocolDecodeError, TransportError

PROFILE = DeviceProfile.USB4000
FETCH_C0 = ("send", PROFILE.command_out, b"\x05\x01")


class AcquisitionTestCase(unittest.TestCase):

    def build(self, rate_hz=0, fail_after_frames=None, **mock_args):
        self.mock = MockUSBDevice(PROFILE, **mock_args)
        self.mock.fail_after_frames = fail_after_frames
        self.device = USB4000Device(transport=self.mock)
        self.readings = []
        self.infos = []
        self.acquisition = Acquisition(
            device        = self.device,
            config        = ScanConfig(rate_hz=rate_hz),
            callback      = self.readings.append,
            info_callback = self.infos.append)
        self.observer = RecordingObserver()
        self.acquisition.add_observer(self.observer)
        return self.acquisition

    def tearDown(self):
        self.acquisition.close()


class TestSingleShot(AcquisitionTestCase):

    def test_blocking(self):
        acquisition = self.build()
        self.assertTrue(acquisition.start_scan(blocking=True))

        self.assertEqual(self.observer.events, [(True, None), (False, None)])
        self.assertEqual(acquisition.state, RunState.STOPPED)
        self.assertFalse(acquisition.is_running())

        self.assertEqual(len(self.readings), 1)
        reading = acquisition.latest_reading
        self.assertIs(reading, self.readings[0])
        self.assertEqual(reading.pixels(), 4096)
        self.assertAlmostEqual(reading.wavelengths[0], 190.3772211)

    def test_opens_device_on_first_run(self):
        acquisition = self.build()
        self.assertFalse(self.device.connected)
        acquisition.start_scan(blocking=True)
        self.assertTrue(self.device.connected)
        self.assertEqual(self.mock.history[0], ("send", 0x01, b"\x01"))

    def test_threaded(self):
        acquisition = self.build()
        self.assertTrue(acquisition.start_scan())
        acquisition.join(5)

        self.assertEqual(self.observer.events, [(True, None), (False, None)])
        self.assertEqual(len(self.readings), 1)
        self.assertIsNone(acquisition.worker.error)

    def test_calibration_fetched_once_per_session(self):
        acquisition = self.build()
        acquisition.start_scan(blocking=True)
        acquisition.start_scan(blocking=True)

        self.assertEqual(self.mock.history.count(FETCH_C0), 1)
        self.assertEqual(len(self.readings), 2)
        self.assertEqual(self.readings[1].session_count, 2)


class TestRepeating(AcquisitionTestCase):

    def test_second_start_ignored(self):
        acquisition = self.build(rate_hz=10)
        self.assertTrue(acquisition.start_scan())
        self.assertTrue(acquisition.is_running())
        self.assertFalse(acquisition.start_scan())
        self.assertFalse(acquisition.query_info())

        acquisition.stop()
        acquisition.join(5)

        self.assertEqual(self.observer.events, [(True, None), (False, None)])
        self.assertEqual(acquisition.state, RunState.STOPPED)

    def test_rate_limited(self):
        acquisition = self.build(rate_hz=10)

        def stop_after_three(reading):
            self.readings.append(reading)
            if len(self.readings) >= 3:
                acquisition.stop()
        acquisition.callback = stop_after_three

        start = time.monotonic()
        acquisition.start_scan(blocking=True)
        elapsed = time.monotonic() - start

        self.assertEqual(len(self.readings), 3)
        self.assertEqual([r.session_count for r in self.readings], [1, 2, 3])
        self.assertGreaterEqual(elapsed, 0.25)
        self.assertEqual(acquisition.config.mode, RunMode.STOP)

    def test_rate_change_between_iterations(self):
        acquisition = self.build(rate_hz=10)

        def go_single_shot(reading):
            self.readings.append(reading)
            acquisition.config.set_rate(0)
        acquisition.callback = go_single_shot

        acquisition.start_scan(blocking=True)
        self.assertEqual(len(self.readings), 1)

    def test_transport_failure_ends_run(self):
        acquisition = self.build(rate_hz=10, fail_after_frames=1)

        with self.assertRaises(TransportError) as ctx:
            acquisition.start_scan(blocking=True)

        self.assertEqual(len(self.readings), 1)
        self.assertEqual(acquisition.state, RunState.STOPPED)
        self.assertIs(acquisition.last_error, ctx.exception)
        self.assertEqual(self.observer.events[0], (True, None))
        self.assertEqual(self.observer.events[-1], (False, ctx.exception))
        self.assertEqual(len(self.observer.events), 2)

    def test_transport_failure_threaded(self):
        acquisition = self.build(rate_hz=10, fail_after_frames=2)
        acquisition.start_scan()
        acquisition.join(5)

        self.assertFalse(acquisition.is_running())
        self.assertIsInstance(acquisition.worker.error, TransportError)
        (running, error) = self.observer.events[-1]
        self.assertFalse(running)
        self.assertIs(error, acquisition.worker.error)

    def test_can_restart_after_stop(self):
        acquisition = self.build()
        acquisition.start_scan(blocking=True)
        self.assertEqual(acquisition.state, RunState.STOPPED)
        self.assertTrue(acquisition.start_scan(blocking=True))
        self.assertEqual(len(self.observer.events), 4)


class TestInfoQuery(AcquisitionTestCase):

    def test_blocking(self):
        acquisition = self.build()
        self.assertTrue(acquisition.query_info(blocking=True))

        self.assertEqual(acquisition.state, RunState.IDLE)
        self.assertEqual(self.observer.events, [(True, None), (False, None)])
        self.assertEqual(self.readings, [])

        info = acquisition.latest_info
        self.assertIs(info, self.infos[0])
        self.assertEqual(info.serial_number, "USB4C01234")
        self.assertEqual(info.grating, "H2")
        self.assertEqual(info.pixels, 3840)
        self.assertTrue(info.high_speed)
        self.assertAlmostEqual(info.pcb_temp_degC, 24.9984, places=4)
        self.assertAlmostEqual(info.calibration[1], 0.3631595112)

    def test_bad_coefficient(self):
        acquisition = self.build(info={1: "not-a-number"})
        with self.assertRaises(ProtocolDecodeError):
            acquisition.query_info(blocking=True)

        self.assertEqual(acquisition.state, RunState.STOPPED)
        self.assertIsInstance(self.observer.events[-1][1], ProtocolDecodeError)
        self.assertEqual(self.infos, [])


class TestCallbackFailure(AcquisitionTestCase):

    def test_failing_callback_ends_run_with_error(self):
        acquisition = self.build(rate_hz=10)

        def broken(reading):
            raise RuntimeError("consumer bug")
        acquisition.callback = broken

        with self.assertRaises(RuntimeError) as ctx:
            acquisition.start_scan(blocking=True)

        self.assertEqual(acquisition.state, RunState.STOPPED)
        self.assertIs(acquisition.last_error, ctx.exception)
        self.assertEqual(self.observer.events, [(True, None), (False, ctx.exception)])

    def test_failing_callback_threaded(self):
        acquisition = self.build()

        def broken(reading):
            raise RuntimeError("consumer bug")
        acquisition.callback = broken

        acquisition.start_scan()
        acquisition.join(5)

        self.assertFalse(acquisition.worker.is_alive())
        self.assertIsInstance(acquisition.worker.error, RuntimeError)
        self.assertIs(acquisition.last_error, acquisition.worker.error)
        self.assertEqual(self.observer.events[-1], (False, acquisition.worker.error))

    def test_failing_info_callback(self):
        acquisition = self.build()

        def broken(info):
            raise ValueError("bad display")
        acquisition.info_callback = broken

        with self.assertRaises(ValueError):
            acquisition.query_info(blocking=True)

        self.assertEqual(acquisition.state, RunState.STOPPED)
        self.assertIsInstance(self.observer.events[-1][1], ValueError)


class TestObservers(AcquisitionTestCase):

    def test_failing_observer_does_not_stop_others(self):
        acquisition = self.build()

        def broken(running, error):
            raise RuntimeError("observer bug")
        acquisition.observers.insert(0, broken)

        acquisition.start_scan(blocking=True)
        self.assertEqual(self.observer.events, [(True, None), (False, None)])

    def test_state_matches_each_notification(self):
        acquisition = self.build()
        seen = []
        acquisition.add_observer(lambda running, error: seen.append((running, acquisition.state)))

        acquisition.start_scan(blocking=True)
        acquisition.query_info(blocking=True)

        self.assertEqual(seen, [
            (True, RunState.SCANNING), (False, RunState.STOPPED),
            (True, RunState.INFO_QUERY), (False, RunState.IDLE),
        ])

    def test_restart_waits_for_final_notification(self):
        acquisition = self.build()
        events = []
        racers = []

        def observer(running, error):
            events.append(running)
            if not running and not racers:
                racer = threading.Thread(target=acquisition.start_scan)
                racers.append(racer)
                racer.start()
                racer.join(0.2)
                events.append("blocked" if racer.is_alive() else "ran")
        acquisition.add_observer(observer)

        acquisition.start_scan(blocking=True)
        racers[0].join(5)
        acquisition.join(5)

        self.assertEqual(events, [True, False, "blocked", True, False])

    def test_remove_observer(self):
        acquisition = self.build()
        acquisition.remove_observer(self.observer)
        acquisition.start_scan(blocking=True)
        self.assertEqual(self.observer.events, [])


class TestClose(AcquisitionTestCase):

    def test_close_ends_session(self):
        acquisition = self.build(rate_hz=10)
        acquisition.start_scan()
        acquisition.close()

        self.assertEqual(acquisition.state, RunState.IDLE)
        self.assertFalse(acquisition.worker.is_alive())
        self.assertTrue(self.mock.closed)
        self.assertIsNone(self.device.calibration)


class TestScanConfig(unittest.TestCase):

    def test_defaults(self):
        config = ScanConfig()
        self.assertEqual(config.rate_hz, 0)
        self.assertEqual(config.mode, RunMode.SCAN)
        self.assertEqual(config.period_ms(), 0)

    def test_period(self):
        self.assertEqual(ScanConfig(rate_hz=5).period_ms(), 200)

    def test_negative_rate(self):
        with self.assertRaises(ValueError):
            ScanConfig(rate_hz=-1)


if __name__ == "__main__":
    unittest.main()
