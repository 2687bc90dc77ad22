import threading
import time
from types import SimpleNamespace

import numpy as np
import pytest

from layoutcrop.regions.detector import (
    DetectorError,
    InferenceGuard,
    ModelLoadError,
    OnnxDetector,
    load_detector,
    squeeze_output,
)
from layoutcrop.regions.labels import NUM_CLASSES


class FakeSession:
    """Mimics the parts of onnxruntime.InferenceSession the detector touches."""

    def __init__(self, output=None, error=None):
        self.output = output
        self.error = error
        self.feeds = []

    def get_inputs(self):
        return [SimpleNamespace(name="images")]

    def get_outputs(self):
        return [SimpleNamespace(name="output0")]

    def run(self, output_names, feeds):
        self.feeds.append((output_names, feeds))
        if self.error is not None:
            raise self.error
        return [self.output]


class TestOnnxDetector:
    def test_run_feeds_named_input_and_drops_batch_axis(self):
        output = np.zeros((1, 4 + NUM_CLASSES, 21504), dtype=np.float32)
        session = FakeSession(output=output)
        detector = OnnxDetector(session)
        tensor = np.zeros((1, 3, 1024, 1024), dtype=np.float32)

        raw = detector.run(tensor)

        assert raw.shape == (15, 21504)
        (names, feeds), = session.feeds
        assert names == ["output0"]
        assert feeds["images"] is tensor
        assert detector.input_name == "images"

    def test_runtime_error_becomes_detector_error(self):
        detector = OnnxDetector(FakeSession(error=RuntimeError("bad alloc")))

        with pytest.raises(DetectorError, match="bad alloc"):
            detector.run(np.zeros((1, 3, 8, 8), dtype=np.float32))

    def test_shape_mismatch_becomes_detector_error(self):
        detector = OnnxDetector(FakeSession(output=np.zeros((1, 84, 100), dtype=np.float32)))

        with pytest.raises(DetectorError, match="Unexpected detector output shape"):
            detector.run(np.zeros((1, 3, 8, 8), dtype=np.float32))


class TestSqueezeOutput:
    def test_accepts_unbatched_output(self):
        raw = np.ones((4 + NUM_CLASSES, 7), dtype=np.float32)
        assert squeeze_output(raw).shape == (15, 7)

    @pytest.mark.parametrize("shape", [(2, 15, 7), (15,), (14, 7), (1, 1, 15, 7)])
    def test_rejects_other_shapes(self, shape):
        with pytest.raises(DetectorError):
            squeeze_output(np.zeros(shape, dtype=np.float32))


class TestLoadDetector:
    def test_missing_model_file(self, tmp_path):
        with pytest.raises(ModelLoadError, match="does not exist"):
            load_detector(tmp_path / "nope.onnx")

    def test_invalid_model_file(self, tmp_path):
        model = tmp_path / "broken.onnx"
        model.write_bytes(b"definitely not protobuf")

        with pytest.raises(ModelLoadError, match="Failed to load model"):
            load_detector(model)


class TestInferenceGuard:
    def test_rejects_non_positive_permits(self):
        with pytest.raises(ValueError):
            InferenceGuard(0)

    def test_wraps_arbitrary_exceptions(self):
        class Broken:
            def run(self, tensor):
                raise MemoryError("oom")

        with pytest.raises(DetectorError, match="oom"):
            InferenceGuard(1).run(Broken(), np.zeros(1))

    def test_limits_concurrent_calls(self):
        class Counting:
            def __init__(self):
                self.active = 0
                self.max_active = 0
                self.lock = threading.Lock()

            def run(self, tensor):
                with self.lock:
                    self.active += 1
                    self.max_active = max(self.max_active, self.active)
                time.sleep(0.01)
                with self.lock:
                    self.active -= 1
                return np.zeros((1, 4 + NUM_CLASSES, 3), dtype=np.float32)

        detector = Counting()
        guard = InferenceGuard(2)
        threads = [threading.Thread(target=guard.run, args=(detector, None)) for _ in range(8)]
        for t in threads:
            t.start()
        for t in threads:
            t.join()

        assert guard.permits == 2
        assert 1 <= detector.max_active <= 2
