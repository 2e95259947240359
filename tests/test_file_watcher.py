"""Unit tests for the polling file watcher."""

import unittest
import tempfile
import shutil
import os
import sys
from unittest.mock import Mock

# Add parent directory to path for imports
sys.path.insert(0, os.path.dirname(os.path.dirname(os.path.abspath(__file__))))

from deepstack_trigger.services.file_watcher import FileWatcher


class TestFileWatcher(unittest.TestCase):
    """Test cases for FileWatcher."""

    def setUp(self):
        self.test_dir = tempfile.mkdtemp()
        self.pattern = os.path.join(self.test_dir, "Dog*.jpg")
        self.watcher = FileWatcher(poll_interval=0.05)
        self.callback = Mock()

    def tearDown(self):
        self.watcher.stop()
        shutil.rmtree(self.test_dir, ignore_errors=True)

    def create(self, name, content=b"image"):
        path = os.path.join(self.test_dir, name)
        with open(path, "wb") as f:
            f.write(content)
        return path

    def reported(self):
        return [c[0][0] for c in self.callback.call_args_list]

    def test_existing_files_are_reported_once(self):
        first = self.create("Dog1.jpg")
        self.watcher.watch(self.pattern, self.callback)

        self.assertEqual(self.watcher.poll_once(), 1)
        self.assertEqual(self.watcher.poll_once(), 0)
        self.assertEqual(self.reported(), [first])

    def test_new_matching_files_are_reported(self):
        self.watcher.watch(self.pattern, self.callback)
        self.watcher.poll_once()

        dog = self.create("Dog2.jpg")
        self.create("Cat1.jpg")
        self.watcher.poll_once()

        self.assertEqual(self.reported(), [dog])

    def test_replaced_file_is_reported_again(self):
        dog = self.create("Dog1.jpg")
        self.watcher.watch(self.pattern, self.callback)
        self.watcher.poll_once()

        os.remove(dog)
        self.watcher.poll_once()
        self.create("Dog1.jpg")
        self.watcher.poll_once()

        self.assertEqual(self.reported(), [dog, dog])

    def test_await_write_finish_waits_for_stable_size(self):
        watcher = FileWatcher(await_write_finish=True)
        watcher.watch(self.pattern, self.callback)
        dog = self.create("Dog1.jpg", b"part")

        self.assertEqual(watcher.poll_once(), 0)

        with open(dog, "ab") as f:
            f.write(b"ial")
        self.assertEqual(watcher.poll_once(), 0)
        self.assertEqual(watcher.poll_once(), 1)
        self.assertEqual(self.reported(), [dog])

    def test_unwatch(self):
        subscription = self.watcher.watch(self.pattern, self.callback)
        self.watcher.unwatch(subscription)
        self.create("Dog1.jpg")

        self.assertEqual(self.watcher.poll_once(), 0)
        self.callback.assert_not_called()

    def test_callback_errors_do_not_stop_other_patterns(self):
        failing = Mock(side_effect=RuntimeError("boom"))
        self.watcher.watch(self.pattern, failing)
        self.watcher.watch(self.pattern, self.callback)
        self.create("Dog1.jpg")

        self.assertEqual(self.watcher.poll_once(), 2)
        self.callback.assert_called_once()

    def test_background_thread(self):
        self.watcher.watch(self.pattern, self.callback)
        self.watcher.start()
        self.assertTrue(self.watcher.running)

        self.watcher.stop()
        self.assertFalse(self.watcher.running)


if __name__ == '__main__':
    unittest.main()
