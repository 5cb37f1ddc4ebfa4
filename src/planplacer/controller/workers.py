"""
Background Workers (Threading)
==============================
This module decodes uploaded plan images off the GUI thread.

Why is this file needed?
------------------------
1. Responsiveness: Decoding a large scanned floor plan on the main thread
   freezes the viewport. PlanDecodeWorker pushes it to a QThread.
2. Signals: Results come back through Qt signals, which are queued onto the
   GUI thread, so the backdrop only ever mutates the scene from there.

Classes:
    DecodedPlan: RGBA pixels plus size of a decoded plan.
    PlanDecodeWorker: QThread running decode_plan_image().
    PlanLoader: Starts workers and re-emits their results tagged by generation.
"""
from __future__ import annotations

import base64
import binascii
import logging
import urllib.parse
from dataclasses import dataclass
from typing import Union

import numpy as np
import numpy.typing as npt
from PySide6.QtCore import QObject, QThread, Signal, Slot
from PySide6.QtGui import QImage

from planplacer.model.state import PlanResource

logger = logging.getLogger(__name__)


class PlanLoadError(RuntimeError):
    """The plan image could not be read or decoded."""


@dataclass(frozen=True)
class DecodedPlan:
    pixels: npt.NDArray[np.uint8]  # (H, W, 4) RGBA, first row is the top of the image
    width: int
    height: int

    @property
    def aspect(self) -> float:
        return self.width / self.height


def _read_source(source: Union[str, bytes]) -> bytes:
    """Resolve a plan source (bytes, data URL or path) to encoded image bytes."""
    if isinstance(source, (bytes, bytearray)):
        return bytes(source)

    if source.startswith("data:"):
        header, sep, payload = source.partition(",")
        if not sep:
            raise PlanLoadError("Malformed data URL (missing ',').")
        if header.endswith(";base64"):
            try:
                return base64.b64decode(payload, validate=True)
            except binascii.Error as e:
                raise PlanLoadError(f"Invalid base64 payload in data URL: {e}") from e
        return urllib.parse.unquote_to_bytes(payload)

    try:
        with open(source, "rb") as f:
            return f.read()
    except OSError as e:
        raise PlanLoadError(f"Cannot read plan file '{source}': {e}") from e


def decode_plan_image(resource: PlanResource) -> DecodedPlan:
    """
    Decode a plan resource into an RGBA pixel array.

    Raises:
        PlanLoadError: If the source cannot be read or is not a decodable image.
    """
    data = _read_source(resource.source)

    image = QImage.fromData(data)
    if image.isNull():
        raise PlanLoadError(f"'{resource.name}' is not a supported image.")

    width, height = image.width(), image.height()
    if width <= 0 or height <= 0:
        raise PlanLoadError(f"'{resource.name}' has an empty image ({width}x{height}).")

    image = image.convertToFormat(QImage.Format.Format_RGBA8888)
    stride = image.bytesPerLine()
    raw = np.frombuffer(image.constBits(), dtype=np.uint8, count=stride * height)
    # Rows may be padded to 32-bit boundaries; drop the padding
    pixels = raw.reshape(height, stride)[:, :width * 4].reshape(height, width, 4).copy()

    logger.debug(f"Decoded '{resource.name}': {width}x{height}")
    return DecodedPlan(pixels=pixels, width=width, height=height)


class PlanDecodeWorker(QThread):
    # Signals to hand the result back to the GUI thread
    decoded = Signal(int, object)   # (generation, DecodedPlan)
    failed = Signal(int, str)       # (generation, message)

    def __init__(self, resource: PlanResource, generation: int) -> None:
        super().__init__()
        self.resource = resource
        self.generation = generation

    def run(self) -> None:
        try:
            plan = decode_plan_image(self.resource)
        except Exception as e:
            logger.error(f"Failed to load plan '{self.resource.name}': {e}")
            self.failed.emit(self.generation, str(e))
            return
        self.decoded.emit(self.generation, plan)


class PlanLoader(QObject):
    """
    Starts one PlanDecodeWorker per request.

    Results are tagged with the generation passed to `load`; the caller
    decides whether a result is still current.
    """
    loaded = Signal(int, object)
    failed = Signal(int, str)

    def __init__(self, parent: QObject | None = None) -> None:
        super().__init__(parent)
        self._workers: set[PlanDecodeWorker] = set()

    def load(self, resource: PlanResource, generation: int) -> None:
        logger.info(f"Loading plan '{resource.name}' (generation {generation})")
        worker = PlanDecodeWorker(resource, generation)
        worker.decoded.connect(self.loaded)
        worker.failed.connect(self.failed)
        # Bound slot: queued onto the loader thread, not run on the worker
        worker.finished.connect(self._on_worker_finished)
        self._workers.add(worker)
        worker.start()

    def shutdown(self) -> None:
        """Block until running decodes finish. Call before the app exits."""
        for worker in list(self._workers):
            worker.wait()
        self._workers.clear()

    @Slot()
    def _on_worker_finished(self) -> None:
        worker = self.sender()
        if worker is not None:
            self._forget(worker)

    def _forget(self, worker: PlanDecodeWorker) -> None:
        self._workers.discard(worker)
        worker.deleteLater()
