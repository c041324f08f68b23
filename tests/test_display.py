import numpy as np

from agegender.detect import BoundingBox
from agegender.processing.display import DisplayHandler, format_inference_times, format_result
from agegender.processing.pipeline import AnalysisResult


def make_result(face_count=1, scores=(0.8, 0.2)):
    return AnalysisResult(
        bbox=BoundingBox(30, 40, 50, 50),
        face=np.zeros((50, 50, 3), dtype=np.uint8),
        age=31.7,
        gender_scores=np.array(scores, dtype=np.float32),
        age_inference_ms=12.4,
        gender_inference_ms=7.6,
        face_count=face_count,
    )


def test_inference_times_report_each_model():
    text = format_inference_times(make_result())

    age_line, gender_line = text.splitlines()
    assert age_line.startswith("Age Detection model inference time : 12 ms")
    assert gender_line == "Gender Detection model inference time : 8 ms"


def test_format_result():
    text = format_result(make_result())
    assert "Age    : 31" in text
    assert "Gender : Male" in text
    assert "Faces" not in text


def test_format_result_mentions_extra_faces():
    assert "Faces  : 3" in format_result(make_result(face_count=3))


def test_draw_result_marks_the_face():
    frame = np.zeros((200, 200, 3), dtype=np.uint8)
    DisplayHandler().draw_result(frame, make_result(scores=(0.1, 0.9)))

    # Viền bbox có màu FEMALE
    assert tuple(frame[70, 30]) == (180, 0, 255)


def test_disabled_overlay_leaves_frame_untouched():
    frame = np.zeros((200, 200, 3), dtype=np.uint8)
    display = DisplayHandler(overlay_enabled=False)

    display.draw_result(frame, make_result())

    assert not frame.any()
    assert display.show("test", frame) == -1
