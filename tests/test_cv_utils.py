import cv2
import numpy as np

from poib_estimator.models import ErrorKind, ProcessingError
from poib_estimator.utils import cv_utils


def test_load_image_round_trip(tmp_path, group_image):
    path = tmp_path / "target.png"
    cv2.imwrite(str(path), group_image)
    loaded = cv_utils.load_image(path)
    assert isinstance(loaded, np.ndarray)
    assert loaded.dtype == np.uint8
    assert np.array_equal(loaded, group_image)


def test_load_color_image_is_grayscale(tmp_path):
    bgr = np.zeros((40, 60, 3), dtype=np.uint8)
    bgr[:, :] = (255, 255, 255)
    path = tmp_path / "color.png"
    cv2.imwrite(str(path), bgr)
    loaded = cv_utils.load_image(path)
    assert loaded.shape == (40, 60)
    assert int(loaded.min()) == 255


def test_load_missing_file(tmp_path):
    err = cv_utils.load_image(tmp_path / "nope.jpg")
    assert isinstance(err, ProcessingError)
    assert err.error_type == ErrorKind.MALFORMED_INPUT
    assert err.details["reason"] == "file_not_found"


def test_load_corrupt_file(tmp_path):
    path = tmp_path / "broken.jpg"
    path.write_bytes(b"not an image")
    err = cv_utils.load_image(path)
    assert isinstance(err, ProcessingError)
    assert err.details["reason"] == "imread_failed"


def test_decode_image(group_image):
    ok, encoded = cv2.imencode(".png", group_image)
    assert ok
    decoded = cv_utils.decode_image(encoded.tobytes())
    assert np.array_equal(decoded, group_image)


def test_decode_empty_and_garbage():
    assert cv_utils.decode_image(b"").details["reason"] == "empty_image"
    assert cv_utils.decode_image(b"\x00\x01\x02").details["reason"] == "imdecode_failed"


def test_to_grayscale_variants():
    bgra = np.full((4, 4, 4), 200, dtype=np.uint8)
    assert cv_utils.to_grayscale(bgra).shape == (4, 4)
    deep = np.full((4, 4), 65535, dtype=np.uint16)
    gray = cv_utils.to_grayscale(deep)
    assert gray.dtype == np.uint8
    assert int(gray[0, 0]) == 255
    single = np.zeros((4, 4, 1), dtype=np.uint8)
    assert cv_utils.to_grayscale(single).shape == (4, 4)


def test_downsample_to_limit():
    big = np.full((2000, 1000), 255, dtype=np.uint8)
    small = cv_utils.downsample_to_limit(big, max_dimension=800)
    assert small.shape == (800, 400)
    same = cv_utils.downsample_to_limit(big, max_dimension=4000)
    assert same is big


def test_float_image_is_scaled_not_truncated():
    img = np.array([[0.0, 0.5], [1.0, 1.2]], dtype=np.float32)
    gray = cv_utils.to_grayscale(img)
    assert gray.dtype == np.uint8
    assert gray.tolist() == [[0, 128], [255, 255]]
    bgr = np.full((3, 3, 3), 0.8, dtype=np.float32)
    assert int(cv_utils.to_grayscale(bgr)[0, 0]) == 204


def test_pixel_buffer_from_image(group_image):
    buf = cv_utils.pixel_buffer_from_image(group_image)
    assert (buf.width, buf.height) == (380, 480)
