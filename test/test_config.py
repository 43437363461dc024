import json
import os
import tempfile
import unittest

from clipboard_history.config import (
    DEFAULT_MAX_ENTRIES,
    DEFAULT_POPUP_HOTKEY,
    Config,
    default_storage_path,
    ensure_default_config,
    load_config,
    resolve,
)


def encode(data):
    return json.dumps(data).encode("utf-8")


class ResolveTests(unittest.TestCase):
    def test_none_gives_defaults(self):
        self.assertEqual(resolve(None), Config())

    def test_malformed_file_gives_defaults(self):
        with self.assertLogs(level="WARNING"):
            self.assertEqual(resolve(b"{nope"), Config())
        with self.assertLogs(level="WARNING"):
            self.assertEqual(resolve(b"[1, 2]"), Config())

    def test_fields_fall_back_individually(self):
        with self.assertLogs(level="WARNING"):
            config = resolve(encode({"max_entries": 0, "hotkey": {"popup": "Ctrl+Alt+H"}}))
        self.assertEqual(config.max_entries, DEFAULT_MAX_ENTRIES)
        self.assertEqual(config.popup_hotkey, "Ctrl+Alt+H")

    def test_invalid_hotkey_falls_back(self):
        with self.assertLogs(level="WARNING"):
            config = resolve(encode({"max_entries": 20, "hotkey": {"popup": "Ctrl+A+B"}}))
        self.assertEqual(config.max_entries, 20)
        self.assertEqual(config.popup_hotkey, DEFAULT_POPUP_HOTKEY)

    def test_timeout_not_below_interval_resets_both(self):
        with self.assertLogs(level="WARNING"):
            config = resolve(encode({"poll_interval_ms": 200, "read_timeout_ms": 500}))
        self.assertEqual((config.poll_interval_ms, config.read_timeout_ms), (300, 100))

    def test_storage_override(self):
        config = resolve(encode({"storage_path": "/tmp/custom/history.json"}))
        self.assertEqual(config.resolved_storage_path(), "/tmp/custom/history.json")

    def test_default_storage_path_layout(self):
        path = resolve(None).resolved_storage_path()
        self.assertEqual(path, default_storage_path())
        self.assertTrue(path.endswith(os.path.join("clipboard-history", "history.json")))


class EmptyHotkeyTests(unittest.TestCase):
    def test_empty_hotkey_is_kept_for_startup_to_reject(self):
        config = resolve(encode({"hotkey": {"popup": ""}}))
        self.assertEqual(config.popup_hotkey, "")

    def test_malformed_hotkey_still_falls_back(self):
        with self.assertLogs(level="WARNING"):
            config = resolve(encode({"hotkey": {"popup": "Ctrl+"}}))
        self.assertEqual(config.popup_hotkey, DEFAULT_POPUP_HOTKEY)


class ConfigFileTests(unittest.TestCase):
    def test_ensure_default_then_load(self):
        with tempfile.TemporaryDirectory() as tmp:
            path = os.path.join(tmp, "conf", "config.json")
            self.assertTrue(ensure_default_config(path))
            self.assertFalse(ensure_default_config(path))
            self.assertEqual(load_config(path), Config())

    def test_existing_file_not_overwritten(self):
        with tempfile.TemporaryDirectory() as tmp:
            path = os.path.join(tmp, "config.json")
            with open(path, "w", encoding="utf-8") as f:
                json.dump({"max_entries": 5}, f)
            ensure_default_config(path)
            self.assertEqual(load_config(path).max_entries, 5)

    def test_missing_file_loads_defaults(self):
        with tempfile.TemporaryDirectory() as tmp:
            self.assertEqual(load_config(os.path.join(tmp, "missing.json")), Config())


if __name__ == "__main__":
    unittest.main()
