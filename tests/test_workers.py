import base64
import time

import numpy as np
import pytest
from PySide6.QtCore import QBuffer, QByteArray, QCoreApplication, QIODevice, QThread
from PySide6.QtGui import QColor, QImage

from planplacer.controller.workers import PlanDecodeWorker, PlanLoader, PlanLoadError, decode_plan_image
from planplacer.model.state import PlanResource


def encode_png(width: int = 5, height: int = 3) -> bytes:
    image = QImage(width, height, QImage.Format.Format_RGBA8888)
    image.fill(QColor(255, 0, 0))
    image.setPixelColor(0, 0, QColor(0, 0, 255))

    data = QByteArray()
    buffer = QBuffer(data)
    buffer.open(QIODevice.OpenModeFlag.WriteOnly)
    image.save(buffer, "PNG")
    buffer.close()
    return bytes(data.data())


def test_decode_bytes():
    plan = decode_plan_image(PlanResource(source=encode_png(), name="plan.png"))

    assert (plan.width, plan.height) == (5, 3)
    assert plan.pixels.shape == (3, 5, 4)
    assert plan.pixels.dtype == np.uint8
    assert plan.aspect == pytest.approx(5 / 3)
    # First row is the top of the image
    assert plan.pixels[0, 0].tolist() == [0, 0, 255, 255]
    assert plan.pixels[2, 4].tolist() == [255, 0, 0, 255]


def test_decode_base64_data_url():
    url = "data:image/png;base64," + base64.b64encode(encode_png()).decode("ascii")
    plan = decode_plan_image(PlanResource(source=url))
    assert (plan.width, plan.height) == (5, 3)


def test_decode_file(tmp_path):
    path = tmp_path / "floor.png"
    path.write_bytes(encode_png(width=7, height=2))

    plan = decode_plan_image(PlanResource.from_file(str(path)))
    assert (plan.width, plan.height) == (7, 2)


@pytest.mark.parametrize("source", [
    b"definitely not an image",
    "data:image/png;base64,@@@",
    "data:image/png;base64",
    "/nonexistent/plan.png",
])
def test_bad_sources_raise(source):
    with pytest.raises(PlanLoadError):
        decode_plan_image(PlanResource(source=source))


def test_worker_reports_failure_with_generation():
    worker = PlanDecodeWorker(PlanResource(source=b"junk", name="junk.png"), 7)
    failures, results = [], []
    worker.failed.connect(lambda gen, msg: failures.append((gen, msg)))
    worker.decoded.connect(lambda gen, plan: results.append(gen))

    worker.run()

    assert results == []
    assert failures[0][0] == 7
    assert "junk.png" in failures[0][1]


def test_worker_reports_result_with_generation():
    worker = PlanDecodeWorker(PlanResource(source=encode_png()), 3)
    results = []
    worker.decoded.connect(lambda gen, plan: results.append((gen, plan.width)))

    worker.run()

    assert results == [(3, 5)]


def test_loader_forgets_finished_worker_on_its_own_thread():
    loader = PlanLoader()
    failures, forgotten_on = [], []
    loader.failed.connect(lambda gen, msg: failures.append(gen))

    forget = loader._forget

    def record_forget(worker) -> None:
        forgotten_on.append(QThread.currentThread())
        forget(worker)

    loader._forget = record_forget
    loader.load(PlanResource(source=b"junk", name="junk.png"), 1)
    (worker,) = loader._workers
    assert worker.wait(5000)

    deadline = time.monotonic() + 5.0
    while loader._workers and time.monotonic() < deadline:
        QCoreApplication.processEvents()

    assert loader._workers == set()
    assert failures == [1]
    assert forgotten_on == [loader.thread()]
