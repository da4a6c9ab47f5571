"""Tests for the batch module."""

import io
import os
import shutil
import tempfile
import threading
import unittest
import zipfile

import numpy as np

from lumina.adjustments import AdjustmentSet
from lumina.batch import (
    ARCHIVE_FOLDER, BatchItem, BatchPolicy, BatchQueue, BatchRunner, BatchStatus,
    package_results, write_archive
)
from lumina.errors import EncodeFailure
from lumina.presets import AUTO_PORTRA_PRESET
from lumina.straighten import BoundedRandom, FixedZero
from lumina.utils import encode_jpeg, encode_png, load_image


def make_image_bytes(value: int, size=(24, 32)) -> bytes:
    image = np.full((size[0], size[1], 3), value, dtype=np.uint8)
    image[:, : size[1] // 2, 0] = 255 - value
    return encode_png(image)


class TestBatchItem(unittest.TestCase):
    """Test cases for the BatchItem class."""

    def test_lifecycle(self):
        item = BatchItem(b"data", name="a.jpg")
        self.assertIs(item.status, BatchStatus.PENDING)
        item.mark_processing()
        item.mark_done(b"jpeg", rotation=0.5)
        self.assertIs(item.status, BatchStatus.DONE)
        self.assertEqual(item.output, b"jpeg")
        self.assertIsNotNone(item.get_execution_time())

    def test_invalid_transitions(self):
        item = BatchItem(b"data")
        with self.assertRaises(ValueError):
            item.mark_done(b"jpeg")
        item.mark_processing()
        with self.assertRaises(ValueError):
            item.mark_processing()
        item.mark_error("boom")
        with self.assertRaises(ValueError):
            item.mark_done(b"jpeg")
        self.assertIsNone(item.output)
        self.assertEqual(item.error, "boom")

    def test_empty_output_is_encode_failure(self):
        item = BatchItem(b"data")
        item.mark_processing()
        with self.assertRaises(EncodeFailure):
            item.mark_done(b"")
        self.assertIs(item.status, BatchStatus.PROCESSING)

    def test_name_from_path(self):
        item = BatchItem(os.path.join("photos", "beach.jpg"))
        self.assertEqual(item.name, "beach.jpg")


class TestBatchQueue(unittest.TestCase):
    """Test cases for the BatchQueue class."""

    def test_add_remove_clear(self):
        queue = BatchQueue()
        first = queue.add(b"1")
        second = queue.add(b"2")
        self.assertEqual(len(queue), 2)
        self.assertEqual(queue.index_of(second.item_id), 1)
        self.assertTrue(queue.remove(first.item_id))
        self.assertFalse(queue.remove(first.item_id))
        self.assertTrue(first.removed)
        self.assertEqual(queue.items(), [second])
        self.assertIsNone(queue.get(first.item_id))
        queue.clear()
        self.assertEqual(len(queue), 0)
        self.assertTrue(second.removed)

    def test_counts(self):
        queue = BatchQueue()
        item = queue.add(b"1")
        queue.add(b"2")
        queue.transition(item, BatchStatus.PROCESSING)
        self.assertEqual(queue.counts(), {"pending": 1, "processing": 1, "done": 0, "error": 0})


class TestBatchPolicy(unittest.TestCase):
    """Test cases for the BatchPolicy class."""

    def test_default_is_neutral(self):
        self.assertTrue(BatchPolicy().adjustments_for().is_neutral())

    def test_portra_policy(self):
        policy = BatchPolicy.portra(apply_portra=True, auto_straighten=False)
        self.assertEqual(policy.adjustments_for(), AdjustmentSet().merged(AUTO_PORTRA_PRESET.values))
        self.assertTrue(BatchPolicy.portra(False, False).adjustments_for().is_neutral())

    def test_rotation_per_item(self):
        policy = BatchPolicy(straighten=BoundedRandom(-1, 1, seed=9))
        rotations = [policy.adjustments_for().rotate for _ in range(5)]
        self.assertGreater(len(set(rotations)), 1)
        self.assertTrue(all(-1 <= rotation <= 1 for rotation in rotations))

    def test_rotation_adds_to_preset_rotation(self):
        policy = BatchPolicy(preset={"rotate": 44.5}, straighten=BoundedRandom(1, 1))
        self.assertEqual(policy.adjustments_for().rotate, 45.0)


class TestBatchRunner(unittest.TestCase):
    """Test cases for the BatchRunner class."""

    def setUp(self):
        """Set up test fixtures."""
        self.temp_dir = tempfile.mkdtemp()
        self.queue = BatchQueue()
        self.good_a = self.queue.add(make_image_bytes(40), name="a.png")
        self.bad = self.queue.add(b"this is not an image", name="b.png")
        self.good_c = self.queue.add(make_image_bytes(200), name="c.png")

    def tearDown(self):
        """Tear down test fixtures."""
        shutil.rmtree(self.temp_dir)

    def test_failure_is_isolated(self):
        summary = BatchRunner(self.queue, BatchPolicy.portra(seed=1)).run()

        self.assertEqual(
            [item.status for item in self.queue],
            [BatchStatus.DONE, BatchStatus.ERROR, BatchStatus.DONE]
        )
        self.assertEqual((summary.total, summary.done, summary.error), (3, 2, 1))
        self.assertIsNone(self.bad.output)
        self.assertTrue(self.bad.error)
        self.assertEqual(summary.errors[0]["name"], "b.png")

        with zipfile.ZipFile(io.BytesIO(package_results(self.queue))) as archive:
            self.assertEqual(
                sorted(archive.namelist()),
                [f"{ARCHIVE_FOLDER}/lumina_edit_1.jpg", f"{ARCHIVE_FOLDER}/lumina_edit_3.jpg"]
            )
            data = archive.read(f"{ARCHIVE_FOLDER}/lumina_edit_1.jpg")
        self.assertTrue(data.startswith(b"\xff\xd8"))
        self.assertEqual(load_image(data).shape, (24, 32, 3))

    def test_status_updates_in_enqueue_order(self):
        updates = []
        lock = threading.Lock()

        def on_update(item):
            with lock:
                updates.append((item.name, item.status))

        BatchRunner(self.queue, on_update=on_update).run()

        started = [name for name, status in updates if status is BatchStatus.PROCESSING]
        self.assertEqual(started, ["a.png", "b.png", "c.png"])
        for name in ("a.png", "b.png", "c.png"):
            statuses = [status for item_name, status in updates if item_name == name]
            self.assertEqual(statuses[0], BatchStatus.PROCESSING)
            self.assertTrue(statuses[1].is_terminal)
            self.assertEqual(len(statuses), 2)

    def test_parallel_workers(self):
        for value in (10, 90, 160):
            self.queue.add(make_image_bytes(value))
        started = []

        def on_update(item):
            if item.status is BatchStatus.PROCESSING:
                started.append(item.item_id)

        runner = BatchRunner(self.queue, BatchPolicy.portra(seed=2), config={'max_workers': 3}, on_update=on_update)
        summary = runner.run()
        self.assertEqual((summary.done, summary.error), (5, 1))
        self.assertEqual(sorted(started), sorted(item.item_id for item in self.queue))

    def test_rotation_recorded_within_range(self):
        BatchRunner(self.queue, BatchPolicy.portra(seed=4)).run()
        for item in (self.good_a, self.good_c):
            self.assertTrue(-1 <= item.rotation <= 1)

    def test_cancel_stops_between_items(self):
        runner = BatchRunner(self.queue)

        def on_update(item):
            if item.status.is_terminal:
                runner.cancel()

        runner.on_update = on_update
        summary = runner.run()
        self.assertIs(self.good_a.status, BatchStatus.DONE)
        self.assertIs(self.bad.status, BatchStatus.PENDING)
        self.assertIs(self.good_c.status, BatchStatus.PENDING)
        self.assertTrue(summary.cancelled)
        self.assertEqual(summary.pending, 2)

    def test_remove_in_flight_discards_result(self):
        def on_update(item):
            if item is self.good_a and item.status is BatchStatus.PROCESSING:
                self.queue.remove(item.item_id)

        summary = BatchRunner(self.queue, on_update=on_update).run()
        self.assertIs(self.good_a.status, BatchStatus.DONE)
        self.assertIsNone(self.good_a.output)
        self.assertIs(self.good_c.status, BatchStatus.DONE)
        self.assertEqual(summary.done, 1)
        self.assertEqual(summary.removed, 1)
        self.assertEqual(summary.total, 2)
        self.assertEqual(
            summary.total,
            summary.done + summary.error + summary.pending + summary.skipped
        )
        self.assertEqual(summary.to_dict()["removed_photos"], 1)

        with zipfile.ZipFile(io.BytesIO(package_results(self.queue))) as archive:
            self.assertEqual(archive.namelist(), [f"{ARCHIVE_FOLDER}/lumina_edit_2.jpg"])

    def test_removed_pending_item_is_skipped(self):
        self.queue.remove(self.bad.item_id)
        summary = BatchRunner(self.queue).run()
        self.assertEqual((summary.total, summary.done, summary.error), (2, 2, 0))
        self.assertIs(self.bad.status, BatchStatus.PENDING)

    def test_rerun_and_skip_completed(self):
        runner = BatchRunner(self.queue)
        runner.run()
        first_output = self.good_a.output
        summary = runner.run()
        self.assertEqual(summary.done, 2)
        self.assertEqual(self.good_a.output, first_output)

        summary = BatchRunner(self.queue, config={'skip_completed': True}).run()
        self.assertEqual(summary.skipped, 2)
        self.assertEqual(summary.error, 1)

    def test_callback_errors_do_not_stop_run(self):
        def on_update(item):
            raise RuntimeError("listener failed")

        summary = BatchRunner(self.queue, on_update=on_update).run()
        self.assertEqual(summary.done, 2)

    def test_start_in_background(self):
        runner = BatchRunner(self.queue, BatchPolicy(straighten=FixedZero()))
        summary = runner.start().result(timeout=60)
        self.assertEqual(summary.done, 2)
        self.assertFalse(runner.is_running)

    def test_cancel_right_after_start(self):
        for value in (10, 90, 160):
            self.queue.add(make_image_bytes(value))
        runner = BatchRunner(self.queue)
        # Holding the queue lock keeps the background run from reading the queue
        # until cancel() has been called
        with self.queue._lock:
            future = runner.start()
            runner.cancel()
        summary = future.result(timeout=60)
        self.assertTrue(summary.cancelled)
        self.assertEqual(summary.pending, 6)
        self.assertTrue(all(item.status is BatchStatus.PENDING for item in self.queue))

        # A later run starts fresh
        summary = runner.run()
        self.assertFalse(summary.cancelled)
        self.assertEqual(summary.done, 5)

    def test_start_while_running(self):
        release = threading.Event()
        runner = BatchRunner(self.queue)
        runner.on_update = lambda item: release.wait(timeout=30)
        future = runner.start()
        self.assertTrue(runner.is_running)
        with self.assertRaises(RuntimeError):
            runner.start()
        with self.assertRaises(RuntimeError):
            runner.run()
        release.set()
        self.assertEqual(future.result(timeout=60).done, 2)

    def test_files_and_archive(self):
        path = os.path.join(self.temp_dir, "photo.jpg")
        with open(path, "wb") as f:
            f.write(encode_jpeg(np.full((16, 16, 3), 120, dtype=np.uint8)))

        queue = BatchQueue()
        queue.add_files([path, os.path.join(self.temp_dir, "missing.jpg")])
        summary = BatchRunner(queue).run()
        self.assertEqual((summary.done, summary.error), (1, 1))

        archive_path = write_archive(os.path.join(self.temp_dir, "out", "batch.zip"), queue)
        with zipfile.ZipFile(archive_path) as archive:
            self.assertEqual(archive.namelist(), [f"{ARCHIVE_FOLDER}/lumina_edit_1.jpg"])

    def test_all_failed_gives_empty_archive(self):
        queue = BatchQueue()
        queue.add(b"")
        queue.add(b"nope")
        summary = BatchRunner(queue).run()
        self.assertEqual(summary.error, 2)
        with zipfile.ZipFile(io.BytesIO(package_results(queue))) as archive:
            self.assertEqual(archive.namelist(), [])

    def test_invalid_config(self):
        with self.assertRaises(ValueError):
            BatchRunner(self.queue, config={'max_workers': 0})


if __name__ == "__main__":
    unittest.main()
