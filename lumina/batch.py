"""Batch processing for the Lumina photo editor.

A :class:`BatchRunner` applies one :class:`BatchPolicy` to every item of a
:class:`BatchQueue`. Items start in enqueue order and each item moves through
``pending -> processing -> done | error``. A failure is recorded on its own
item and never stops the rest of the run.
"""

import io
import os
import time
import uuid
import logging
import threading
import zipfile
import concurrent.futures
from collections import deque
from enum import Enum
from typing import Dict, List, Any, Callable, Iterable, Mapping, Optional, Union

import numpy as np

from .adjustments import AdjustmentSet, clamp_value
from .blender import merge
from .errors import EncodeFailure
from .pipeline import PixelPipeline
from .presets import AUTO_PORTRA_PRESET, FilterPreset
from .straighten import FixedZero, StraightenStrategy, batch_straightener
from .utils import DEFAULT_JPEG_QUALITY, encode_jpeg, load_image

# Set up logging
logger = logging.getLogger(__name__)

ARCHIVE_FILENAME = "lumina_batch_photos.zip"
ARCHIVE_FOLDER = "lumina_batch_edit"
ARCHIVE_PREFIX = "lumina_edit"

BatchSource = Union[bytes, bytearray, str, os.PathLike]


class BatchStatus(Enum):
    """Lifecycle status of a batch item."""
    PENDING = "pending"
    PROCESSING = "processing"
    DONE = "done"
    ERROR = "error"

    @property
    def is_terminal(self) -> bool:
        return self in (BatchStatus.DONE, BatchStatus.ERROR)


_TRANSITIONS = {
    BatchStatus.PENDING: {BatchStatus.PROCESSING},
    BatchStatus.PROCESSING: {BatchStatus.DONE, BatchStatus.ERROR},
    BatchStatus.DONE: set(),
    BatchStatus.ERROR: set(),
}


class BatchItem:
    """One queued image and its processing state."""

    def __init__(self, source: BatchSource, name: Optional[str] = None, item_id: Optional[str] = None):
        """Initialize a batch item.

        Args:
            source: Encoded image bytes or a path to an image file
            name: Display name (defaults to the file name for paths)
            item_id: Unique identifier (generated when omitted)
        """
        self.item_id = item_id or uuid.uuid4().hex[:8]
        if name is None:
            name = os.path.basename(os.fspath(source)) if isinstance(source, (str, os.PathLike)) else self.item_id
        self.name = name
        self.source = source
        self.status = BatchStatus.PENDING
        self.output: Optional[bytes] = None
        self.error: Optional[str] = None
        self.rotation: Optional[float] = None
        self.removed = False
        self.started_at: Optional[float] = None
        self.completed_at: Optional[float] = None

    def _transition(self, status: BatchStatus) -> None:
        if status not in _TRANSITIONS[self.status]:
            raise ValueError(f"Invalid transition for {self.name}: {self.status.value} -> {status.value}")
        self.status = status

    def mark_processing(self) -> None:
        """Mark item as processing."""
        self._transition(BatchStatus.PROCESSING)
        self.started_at = time.time()

    def mark_done(self, output: bytes, rotation: float = 0.0) -> None:
        """Mark item as done with its encoded artifact.

        Raises:
            EncodeFailure: If the artifact is empty
        """
        if not output:
            raise EncodeFailure(f"No output produced for {self.name}")
        self._transition(BatchStatus.DONE)
        self.output = None if self.removed else output
        self.rotation = rotation
        self.completed_at = time.time()

    def mark_error(self, message: str) -> None:
        """Mark item as failed. No artifact is ever attached to a failed item."""
        self._transition(BatchStatus.ERROR)
        self.output = None
        self.error = message
        self.completed_at = time.time()

    def reset(self) -> None:
        """Return the item to pending for a fresh run."""
        self.status = BatchStatus.PENDING
        self.output = None
        self.error = None
        self.rotation = None
        self.started_at = None
        self.completed_at = None

    def get_execution_time(self) -> Optional[float]:
        if self.started_at is None or self.completed_at is None:
            return None
        return self.completed_at - self.started_at

    def to_dict(self) -> Dict[str, Any]:
        """Convert item state to a dictionary."""
        return {
            "id": self.item_id,
            "name": self.name,
            "status": self.status.value,
            "error": self.error,
            "rotation": self.rotation,
            "output_size": len(self.output) if self.output else 0,
            "execution_time": self.get_execution_time(),
        }

    def __repr__(self) -> str:
        return f"BatchItem(id={self.item_id!r}, name={self.name!r}, status={self.status.value})"


class BatchQueue:
    """Ordered, thread-safe collection of batch items."""

    def __init__(self):
        self._items: List[BatchItem] = []
        self._lock = threading.RLock()

    def add(self, source: BatchSource, name: Optional[str] = None) -> BatchItem:
        """Append an image to the queue."""
        item = BatchItem(source, name)
        with self._lock:
            self._items.append(item)
        logger.debug(f"Queued {item.name} ({item.item_id})")
        return item

    def add_files(self, paths: Iterable[Union[str, os.PathLike]]) -> List[BatchItem]:
        return [self.add(path) for path in paths]

    def remove(self, item_id: str) -> bool:
        """Remove an item from any state.

        An item that is being processed is detached from the queue right away
        and its result is discarded when its render finishes.

        Returns:
            True if the item was found
        """
        with self._lock:
            for index, item in enumerate(self._items):
                if item.item_id == item_id:
                    item.removed = True
                    item.output = None
                    del self._items[index]
                    return True
        return False

    def clear(self) -> None:
        with self._lock:
            for item in self._items:
                item.removed = True
                item.output = None
            self._items = []

    def get(self, item_id: str) -> Optional[BatchItem]:
        with self._lock:
            for item in self._items:
                if item.item_id == item_id:
                    return item
        return None

    def index_of(self, item_id: str) -> int:
        """Zero-based position of an item, or -1 if it is not queued."""
        with self._lock:
            for index, item in enumerate(self._items):
                if item.item_id == item_id:
                    return index
        return -1

    def items(self) -> List[BatchItem]:
        """Snapshot of the queued items in enqueue order."""
        with self._lock:
            return list(self._items)

    def transition(self, item: BatchItem, status: BatchStatus, **kwargs) -> None:
        """Apply a status change to an item under the queue lock."""
        with self._lock:
            if status is BatchStatus.PROCESSING:
                item.mark_processing()
            elif status is BatchStatus.DONE:
                item.mark_done(**kwargs)
            elif status is BatchStatus.ERROR:
                item.mark_error(**kwargs)
            else:
                item.reset()

    def counts(self) -> Dict[str, int]:
        with self._lock:
            counts = {status.value: 0 for status in BatchStatus}
            for item in self._items:
                counts[item.status.value] += 1
            return counts

    def __len__(self) -> int:
        with self._lock:
            return len(self._items)

    def __iter__(self):
        return iter(self.items())


class BatchPolicy:
    """Adjustments shared by every item of a run.

    Args:
        preset: Optional preset merged over neutral at full intensity
        straighten: Strategy that adds a per-item rotation (FixedZero by default)
    """

    def __init__(self,
                 preset: Optional[Union[FilterPreset, Mapping[str, float]]] = None,
                 straighten: Optional[StraightenStrategy] = None):
        self.preset = preset
        self.base = merge(AdjustmentSet(), preset) if preset is not None else AdjustmentSet()
        self.base.validate()
        self.straighten = straighten or FixedZero()

    @classmethod
    def portra(cls, apply_portra: bool = True, auto_straighten: bool = True,
               seed: Optional[int] = None) -> 'BatchPolicy':
        """Policy matching the batch studio toggles."""
        return cls(
            preset=AUTO_PORTRA_PRESET if apply_portra else None,
            straighten=batch_straightener(seed) if auto_straighten else FixedZero()
        )

    def adjustments_for(self, image: Optional[np.ndarray] = None) -> AdjustmentSet:
        """Build the effective adjustments for one item.

        The strategy is consulted once per call, so every item gets its own
        rotation.
        """
        rotation = self.straighten.estimate(image)
        if rotation == 0:
            return self.base.copy()
        return self.base.replace(rotate=clamp_value("rotate", self.base.rotate + rotation))

    def to_dict(self) -> Dict[str, Any]:
        return {
            "preset": self.preset.id if isinstance(self.preset, FilterPreset) else self.preset,
            "adjustments": self.base.to_dict(),
            "straighten": repr(self.straighten),
        }


class BatchSummary:
    """Terminal states of one batch run."""

    def __init__(self, total: int = 0):
        self.total = total
        self.done = 0
        self.error = 0
        self.skipped = 0
        self.pending = 0
        self.removed = 0
        self.cancelled = False
        self.errors: List[Dict[str, str]] = []

    def to_dict(self) -> Dict[str, Any]:
        return {
            "total_photos": self.total,
            "processed_photos": self.done,
            "failed_photos": self.error,
            "skipped_photos": self.skipped,
            "pending_photos": self.pending,
            "removed_photos": self.removed,
            "cancelled": self.cancelled,
            "errors": list(self.errors),
        }


class BatchRunner:
    """Runs the rendering pipeline over a batch queue."""

    def __init__(self,
                 queue: BatchQueue,
                 policy: Optional[BatchPolicy] = None,
                 pipeline: Optional[PixelPipeline] = None,
                 config: Optional[Dict[str, Any]] = None,
                 on_update: Optional[Callable[[BatchItem], None]] = None):
        """Initialize the batch runner.

        Args:
            queue: Items to process
            policy: Adjustment policy shared by all items
            pipeline: Pipeline used for rendering
            config: Configuration dictionary
            on_update: Called with an item after each of its status changes
        """
        self.queue = queue
        self.policy = policy or BatchPolicy()
        self.pipeline = pipeline or PixelPipeline()
        self.config = dict(config or {})
        self._validate_config()
        self.on_update = on_update
        self._cancel_event = threading.Event()
        self._claim_lock = threading.Lock()
        self._run_lock = threading.Lock()

    def _validate_config(self) -> None:
        """Validate and set default configuration parameters."""
        self.config.setdefault('jpeg_quality', DEFAULT_JPEG_QUALITY)
        self.config.setdefault('max_workers', 1)
        self.config.setdefault('skip_completed', False)

        if self.config['max_workers'] < 1:
            raise ValueError("max_workers must be at least 1")

    @property
    def is_running(self) -> bool:
        return self._run_lock.locked()

    def cancel(self) -> None:
        """Stop the current run once in-flight items finish."""
        self._cancel_event.set()
        logger.info("Batch cancellation requested")

    def start(self) -> concurrent.futures.Future:
        """Run the batch on a background thread.

        The run is claimed before this returns, so a :meth:`cancel` issued
        right afterwards always applies to it.

        Returns:
            Future resolving to the :class:`BatchSummary`

        Raises:
            RuntimeError: If a run is already in progress
        """
        self._begin_run()
        executor = concurrent.futures.ThreadPoolExecutor(max_workers=1, thread_name_prefix="lumina-batch")
        try:
            future = executor.submit(self._execute)
        except Exception:
            self._run_lock.release()
            raise
        finally:
            executor.shutdown(wait=False)
        return future

    def run(self) -> BatchSummary:
        """Process every queued item.

        Returns:
            Summary of per-item terminal states

        Raises:
            RuntimeError: If a run is already in progress
        """
        self._begin_run()
        return self._execute()

    def _begin_run(self) -> None:
        """Claim the runner and reset cancellation for a new run."""
        if not self._run_lock.acquire(blocking=False):
            raise RuntimeError("A batch run is already in progress")
        self._cancel_event.clear()

    def _execute(self) -> BatchSummary:
        """Body of a claimed run; releases the runner when done."""
        try:
            items = self.queue.items()
            summary = BatchSummary(total=len(items))

            pending = deque()
            for item in items:
                if self.config['skip_completed'] and item.status is BatchStatus.DONE:
                    summary.skipped += 1
                    continue
                self.queue.transition(item, BatchStatus.PENDING)
                pending.append(item)

            run_items = list(pending)
            logger.info(f"Starting batch run of {len(pending)} images ({summary.skipped} skipped)")

            workers = min(self.config['max_workers'], max(len(pending), 1))
            if workers == 1:
                self._drain(pending)
            else:
                with concurrent.futures.ThreadPoolExecutor(max_workers=workers) as executor:
                    futures = [executor.submit(self._drain, pending) for _ in range(workers)]
                    for future in futures:
                        future.result()

            self._summarize(run_items, summary)
            logger.info(
                f"Batch run finished: {summary.done} done, {summary.error} failed, "
                f"{summary.skipped} skipped{', cancelled' if summary.cancelled else ''}"
            )
            return summary
        finally:
            self._run_lock.release()

    def _drain(self, pending: deque) -> None:
        """Claim and process items until the queue is empty or the run is cancelled."""
        while True:
            # Claiming under one lock keeps processing starts in enqueue order
            with self._claim_lock:
                if self._cancel_event.is_set() or not pending:
                    return
                item = pending.popleft()
                if item.removed:
                    continue
                self.queue.transition(item, BatchStatus.PROCESSING)
            self._notify(item)
            self._process_item(item)
            self._notify(item)

    def _process_item(self, item: BatchItem) -> None:
        """Load, render and encode one item, isolating any failure to it."""
        try:
            image = load_image(item.source)
            adjustments = self.policy.adjustments_for(image)
            rendered = self.pipeline.render(image, adjustments)
            output = encode_jpeg(rendered, self.config['jpeg_quality'])
            self.queue.transition(item, BatchStatus.DONE, output=output, rotation=adjustments.rotate)
        except Exception as e:
            logger.error(f"Failed to process {item.name}: {e}")
            self.queue.transition(item, BatchStatus.ERROR, message=str(e))
            return

        if item.removed:
            logger.debug(f"Discarded result for removed item {item.name}")
        logger.debug(f"Finished {item.name} in {item.get_execution_time():.3f}s")

    def _notify(self, item: BatchItem) -> None:
        if self.on_update is None:
            return
        try:
            self.on_update(item)
        except Exception as e:
            logger.error(f"Error in batch update callback: {e}")

    def _summarize(self, items: List[BatchItem], summary: BatchSummary) -> None:
        for item in items:
            if item.removed:
                summary.removed += 1
                continue
            if item.status is BatchStatus.DONE:
                summary.done += 1
            elif item.status is BatchStatus.ERROR:
                summary.error += 1
                summary.errors.append({"name": item.name, "error": item.error or ""})
            elif item.status is BatchStatus.PENDING:
                summary.pending += 1
        # Items removed mid-run no longer count towards the total
        summary.total -= summary.removed
        summary.cancelled = self._cancel_event.is_set() and summary.pending > 0


def package_results(items: Union[BatchQueue, Iterable[BatchItem]],
                    prefix: str = ARCHIVE_PREFIX,
                    folder: str = ARCHIVE_FOLDER) -> bytes:
    """Bundle the artifacts of finished items into a ZIP archive.

    Entries are named ``<folder>/<prefix>_<n>.jpg`` where ``n`` is the item's
    1-based position in the queue. Failed and unfinished items are left out.

    Returns:
        The archive as bytes
    """
    if isinstance(items, BatchQueue):
        items = items.items()

    buffer = io.BytesIO()
    with zipfile.ZipFile(buffer, 'w', zipfile.ZIP_DEFLATED) as archive:
        for index, item in enumerate(items, start=1):
            if item.status is BatchStatus.DONE and item.output:
                archive.writestr(f"{folder}/{prefix}_{index}.jpg", item.output)
    return buffer.getvalue()


def write_archive(output_path: str, items: Union[BatchQueue, Iterable[BatchItem]], **kwargs) -> str:
    """Write :func:`package_results` to a file and return its path."""
    output_dir = os.path.dirname(output_path)
    if output_dir:
        os.makedirs(output_dir, exist_ok=True)
    with open(output_path, 'wb') as f:
        f.write(package_results(items, **kwargs))
    return output_path
