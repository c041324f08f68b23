import cv2
import numpy as np
import pytest

from agegender.core.errors import CropError, ImageDecodeError
from agegender.detect import BoundingBox
from agegender.processing.cropper import crop_to_bbox, decode_image, load_image, rotate_image


def test_crop_shifts_origin_down_and_keeps_size(face_image, face_box):
    face = crop_to_bbox(face_image, face_box, shift=5)

    assert face.shape == (70, 60, 3)
    np.testing.assert_array_equal(face, face_image[25:95, 40:100])


def test_crop_without_shift_matches_bbox(face_image, face_box):
    face = crop_to_bbox(face_image, face_box, shift=0)
    np.testing.assert_array_equal(face, face_image[20:90, 40:100])


def test_crop_is_a_copy(face_image, face_box):
    face = crop_to_bbox(face_image, face_box)
    face[:] = 0
    assert face_image[25:95, 40:100].any()


def test_crop_clips_to_image_bounds(face_image):
    box = BoundingBox(130, 100, 60, 60)
    face = crop_to_bbox(face_image, box, shift=5)
    # 160 - 130 = 30 columns, 120 - 105 = 15 rows remain
    assert face.shape == (15, 30, 3)


def test_crop_outside_image_raises(face_image):
    with pytest.raises(CropError):
        crop_to_bbox(face_image, BoundingBox(10, 118, 20, 20), shift=5)


def test_rotate_negative_ninety_is_counterclockwise():
    image = np.arange(6, dtype=np.uint8).reshape(2, 3)

    rotated = rotate_image(image, -90)

    # Ảnh camera điện thoại cần -90: quay ngược chiều kim đồng hồ
    np.testing.assert_array_equal(rotated, [[2, 5], [1, 4], [0, 3]])
    np.testing.assert_array_equal(rotated, np.rot90(image, 1))


def test_rotate_positive_ninety_is_clockwise():
    image = np.arange(6, dtype=np.uint8).reshape(2, 3)

    np.testing.assert_array_equal(rotate_image(image, 90), [[3, 0], [4, 1], [5, 2]])
    np.testing.assert_array_equal(rotate_image(image, 270), rotate_image(image, -90))


def test_rotate_zero_and_full_turn_return_same_pixels(face_image):
    assert rotate_image(face_image, 0) is face_image
    np.testing.assert_array_equal(rotate_image(face_image, 360), face_image)


def test_rotate_rejects_arbitrary_angles(face_image):
    with pytest.raises(ValueError):
        rotate_image(face_image, 45)


def test_load_image_missing_file(tmp_path):
    with pytest.raises(ImageDecodeError):
        load_image(str(tmp_path / "nope.jpg"))


def test_load_image_not_an_image(tmp_path):
    path = tmp_path / "broken.jpg"
    path.write_bytes(b"not a jpeg")
    with pytest.raises(ImageDecodeError):
        load_image(str(path))


def test_decode_image_from_png_bytes(face_image):
    ok, buf = cv2.imencode('.png', face_image)
    assert ok

    decoded = decode_image(buf.tobytes())

    np.testing.assert_array_equal(decoded, face_image)


def test_decode_image_empty():
    with pytest.raises(ImageDecodeError):
        decode_image(b"")
