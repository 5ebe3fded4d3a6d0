# loader.py
"""
Asynchronous model loading.

Models are read on a worker thread and parsed with trimesh. Progress and
completion are queued and handed to observers on the main thread by
LoadTask.poll(), so scene changes never happen off the main thread.
"""
import importlib
import io
import logging
import os
import queue
from concurrent.futures import Future, ThreadPoolExecutor
from typing import Callable, List, Optional, Tuple

import numpy as np
import trimesh

from constants import GEOMETRY_DECODER, LOAD_CHUNK_SIZE, MODEL_COLOR
from scene import BufferGeometry, LambertMaterial, Mesh, ResourceTracker

# --- Data Contracts ---
#
# class ModelLoader:
#   - __init__(self, decoder: str, chunk_size: int):
#     - Imports the compressed-geometry decoder module. ImportError if it
#       is not installed.
#   - load(self, path: str) -> LoadTask: starts reading immediately.
#   - shutdown(): waits for outstanding loads.
#
# class LoadTask:
#   - add_progress_observer(fn(url, loaded, total))
#   - add_done_callback(fn(model: trimesh.Trimesh))
#   - add_failure_callback(fn(error: BaseException))
#   - poll() -> bool: delivers queued events on the calling thread.
#     Returns True once the task has settled (loaded or failed).
#   - Invariants:
#     - Observed loaded/total ratios never decrease and stay in [0, 1].
#     - Done callbacks fire at most once, and only on success.
#     - Failure callbacks fire at most once, and only on failure.

ProgressObserver = Callable[[str, int, int], None]


class LoadTask:
    def __init__(self, url: str):
        self.url = url
        self.future: Future = Future()
        self.loaded = 0
        self.total = 0
        self.completed = False
        self.failed = False
        self._events: "queue.Queue[Tuple[int, int]]" = queue.Queue()
        self._progress_observers: List[ProgressObserver] = []
        self._done_callbacks: List[Callable[[trimesh.Trimesh], None]] = []
        self._failure_callbacks: List[Callable[[BaseException], None]] = []

    @property
    def progress(self) -> float:
        if self.total <= 0:
            return 1.0 if self.completed else 0.0
        return min(self.loaded / self.total, 1.0)

    @property
    def settled(self) -> bool:
        return self.completed or self.failed

    def add_progress_observer(self, observer: ProgressObserver) -> None:
        self._progress_observers.append(observer)

    def add_done_callback(self, callback: Callable[[trimesh.Trimesh], None]) -> None:
        self._done_callbacks.append(callback)

    def add_failure_callback(self, callback: Callable[[BaseException], None]) -> None:
        self._failure_callbacks.append(callback)

    def report(self, loaded: int, total: int) -> None:
        """Called from the worker thread."""
        self._events.put((loaded, total))

    def poll(self) -> bool:
        # Every progress event is queued before the future settles.
        done = self.future.done()
        while True:
            try:
                loaded, total = self._events.get_nowait()
            except queue.Empty:
                break
            self._deliver_progress(loaded, total)

        if self.settled or not done:
            return self.settled

        error = self.future.exception()
        if error is not None:
            self.failed = True
            logging.error(f"Failed to load model {self.url}: {error}")
            for callback in self._failure_callbacks:
                callback(error)
            return True

        self.completed = True
        model = self.future.result()
        logging.info(f"Model {self.url} loaded.")
        for callback in self._done_callbacks:
            callback(model)
        return True

    def _deliver_progress(self, loaded: int, total: int) -> None:
        total = max(total, self.total)
        loaded = max(loaded, self.loaded)
        if total > 0:
            loaded = min(loaded, total)
        self.loaded, self.total = loaded, total
        for observer in self._progress_observers:
            observer(self.url, loaded, total)


class ModelLoader:
    """Reads binary glTF files on a background thread."""

    def __init__(self, decoder: str = GEOMETRY_DECODER, chunk_size: int = LOAD_CHUNK_SIZE):
        # trimesh decodes KHR_draco_mesh_compression through this module and
        # yields placeholder zeros without it.
        self.decoder = importlib.import_module(decoder)
        self.chunk_size = chunk_size
        self._executor = ThreadPoolExecutor(max_workers=1, thread_name_prefix="model-loader")
        logging.info(f"Model loader ready (geometry decoder: {decoder}).")

    def load(self, path: str) -> LoadTask:
        task = LoadTask(path)
        worker = self._executor.submit(self._read, path, task)
        worker.add_done_callback(lambda done: self._settle(done, task))
        return task

    def shutdown(self) -> None:
        self._executor.shutdown(wait=True)

    def _read(self, path: str, task: LoadTask) -> trimesh.Trimesh:
        total = os.path.getsize(path)
        task.report(0, total)
        buffer = io.BytesIO()
        with open(path, 'rb') as f:
            while True:
                chunk = f.read(self.chunk_size)
                if not chunk:
                    break
                buffer.write(chunk)
                task.report(buffer.tell(), total)
        buffer.seek(0)
        logging.debug(f"Read {total} bytes from {path}, parsing.")
        return trimesh.load_mesh(buffer, file_type='glb')

    @staticmethod
    def _settle(worker: Future, task: LoadTask) -> None:
        error = worker.exception()
        if error is not None:
            task.future.set_exception(error)
        else:
            task.future.set_result(worker.result())


def model_to_mesh(model: trimesh.Trimesh, tracker: Optional[ResourceTracker] = None,
                  scale: float = 1.0, color: Tuple[int, int, int] = MODEL_COLOR) -> Mesh:
    """Wraps a loaded trimesh in a scene mesh with a Lambert material."""
    vertices = np.asarray(model.vertices, dtype=np.float32) * scale
    faces = np.asarray(model.faces, dtype=np.int64)
    geometry = BufferGeometry(vertices, faces, tracker)
    material = LambertMaterial(color, tracker=tracker)
    logging.debug(f"Model mesh built: {len(vertices)} vertices, {len(faces)} faces.")
    return Mesh(geometry, material, name="model")
