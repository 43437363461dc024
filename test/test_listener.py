import queue
import threading
import time
import unittest
from concurrent.futures import TimeoutError as FuturesTimeout
from unittest import mock

import pyperclip

from clipboard_history.entry import Entry
from clipboard_history.errors import ListenerInitError
from clipboard_history.listener import CallableClipboardReader, ChangeListener, PyperclipReader


class ScriptedReader:
    name = "scripted"

    def __init__(self, values):
        self._values = list(values)

    def read(self, timeout):
        value = self._values.pop(0)
        if isinstance(value, Exception):
            raise value
        return value


class ChangeListenerTests(unittest.TestCase):
    def make_listener(self, values):
        return ChangeListener(ScriptedReader(values), queue.Queue(), clock=lambda: 1234.9)

    def test_repeated_value_notifies_once(self):
        listener = self.make_listener(["foo", "foo", "bar"])
        results = [listener.tick() for _ in range(3)]
        emitted = [entry.text for entry in results if entry is not None]
        self.assertEqual(emitted, ["foo", "bar"])
        self.assertEqual(results[0].captured_at, 1234)

    def test_failed_read_keeps_state(self):
        listener = self.make_listener([FuturesTimeout(), "a", RuntimeError("gone"), "a", "b"])
        self.assertIsNone(listener.tick())
        self.assertEqual(listener.state, "idle")
        self.assertEqual(listener.tick().text, "a")
        self.assertEqual(listener.state, "tracking")
        self.assertIsNone(listener.tick())
        self.assertEqual(listener.last_value, "a")
        self.assertIsNone(listener.tick())
        self.assertEqual(listener.tick().text, "b")

    def test_empty_text_is_skipped(self):
        listener = self.make_listener(["", "x"])
        self.assertIsNone(listener.tick())
        self.assertEqual(listener.state, "idle")
        self.assertEqual(listener.tick().text, "x")

    def test_timeout_must_be_shorter_than_interval(self):
        with self.assertRaises(ValueError):
            ChangeListener(ScriptedReader([]), queue.Queue(), poll_interval=0.1, read_timeout=0.1)

    def test_run_delivers_to_channel_until_stopped(self):
        values = iter(["one", "one", "two"])
        stop = threading.Event()
        channel = queue.Queue()

        def read():
            try:
                return next(values)
            except StopIteration:
                stop.set()
                raise RuntimeError("done")

        listener = ChangeListener(
            CallableClipboardReader(read),
            channel,
            poll_interval=0.01,
            read_timeout=0.005,
        )
        thread = threading.Thread(target=listener.run, args=(stop,))
        thread.start()
        thread.join(5)
        self.assertFalse(thread.is_alive())
        received = []
        while not channel.empty():
            received.append(channel.get_nowait().text)
        self.assertEqual(received, ["one", "two"])


class PyperclipReaderTests(unittest.TestCase):
    def test_detect_maps_missing_backend(self):
        with mock.patch("clipboard_history.listener.pyperclip.paste", side_effect=pyperclip.PyperclipException("no xclip")):
            with self.assertRaises(ListenerInitError):
                PyperclipReader.detect()

    def test_detect_and_read(self):
        with mock.patch("clipboard_history.listener.pyperclip.paste", return_value="héllo"):
            reader = PyperclipReader.detect()
            try:
                self.assertEqual(reader.read(1.0), "héllo")
            finally:
                reader.close()

    def test_slow_read_is_collected_on_later_tick(self):
        release = threading.Event()
        calls = []

        def slow_paste():
            calls.append(1)
            release.wait(5)
            return "hi"

        reader = PyperclipReader()
        listener = ChangeListener(reader, queue.Queue(), poll_interval=0.3, read_timeout=0.01)
        try:
            with mock.patch("clipboard_history.listener.pyperclip.paste", side_effect=slow_paste):
                self.assertIsNone(listener.tick())
                self.assertIsNone(listener.tick())
                self.assertEqual(listener.state, "idle")
                release.set()
                entry = None
                for _ in range(100):
                    entry = listener.tick()
                    if entry is not None:
                        break
                    time.sleep(0.01)
            self.assertIsNotNone(entry)
            self.assertEqual(entry.text, "hi")
            self.assertEqual(len(calls), 1)
        finally:
            reader.close()


class DeliveryTests(unittest.TestCase):
    def test_undelivered_change_on_stop_is_logged(self):
        channel = queue.Queue(maxsize=1)
        channel.put(Entry("queued", 1))
        listener = ChangeListener(ScriptedReader([]), channel, poll_interval=0.02, read_timeout=0.01)
        stop = threading.Event()
        stop.set()
        with self.assertLogs(level="WARNING") as logs:
            listener._deliver(Entry("late", 2), stop)
        self.assertTrue(any("dropped" in line for line in logs.output))
        self.assertEqual(channel.qsize(), 1)


if __name__ == "__main__":
    unittest.main()
