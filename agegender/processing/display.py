# agegender/processing/display.py
"""
Display/Presenter module.

Định dạng kết quả (tuổi, giới tính, thời gian inference) và vẽ overlay
lên ảnh bằng OpenCV.

Usage:
    from agegender.processing.display import DisplayHandler, format_result

    print(format_result(result))

    display = DisplayHandler(overlay_enabled=True)
    display.draw_result(image, result)
    display.show("Age/Gender", image)
"""
from dataclasses import dataclass
from typing import Tuple

import cv2
import numpy as np

NO_FACE_TITLE = "No Faces Found"
NO_FACE_MESSAGE = (
    "We could not find any faces in the image you just clicked. "
    "Try clicking another image or improve the lightning or the device rotation."
)
MODELS_INITIALIZED_MESSAGE = "Models initialized."


def format_inference_times(result) -> str:
    """Hai dòng: thời gian inference của age model và gender model."""
    return (
        f"Age Detection model inference time : {result.age_inference_ms:.0f} ms \n"
        f"Gender Detection model inference time : {result.gender_inference_ms:.0f} ms"
    )


def format_result(result) -> str:
    lines = [
        f"Age    : {result.age_years}",
        f"Gender : {result.gender}",
    ]
    if result.face_count > 1:
        lines.append(f"Faces  : {result.face_count} (analysed the first one)")
    lines.append(format_inference_times(result))
    return "\n".join(lines)


@dataclass
class ColorScheme:
    """Bảng màu (BGR format)."""
    MALE: Tuple[int, int, int] = (255, 128, 0)       # Xanh dương
    FEMALE: Tuple[int, int, int] = (180, 0, 255)     # Hồng
    TEXT_BG: Tuple[int, int, int] = (40, 40, 40)
    STATS: Tuple[int, int, int] = (200, 200, 200)


class DisplayHandler:
    """
    Vẽ kết quả lên ảnh và hiển thị cửa sổ OpenCV.
    """

    def __init__(
        self,
        overlay_enabled: bool = True,
        colors: ColorScheme = None,
        font: int = cv2.FONT_HERSHEY_SIMPLEX,
        font_scale: float = 0.6,
        thickness: int = 2
    ):
        self.enabled = overlay_enabled
        self.colors = colors or ColorScheme()
        self.font = font
        self.font_scale = font_scale
        self.thickness = thickness

    def draw_result(self, frame: np.ndarray, result) -> np.ndarray:
        """
        Vẽ bbox + nhãn "age, gender" và dòng thời gian inference.

        Returns:
            frame (đã vẽ tại chỗ)
        """
        if not self.enabled:
            return frame

        box = result.bbox
        color = self.colors.MALE if result.gender == "Male" else self.colors.FEMALE

        cv2.rectangle(
            frame,
            (box.left, box.top), (box.right, box.bottom),
            color, self.thickness
        )

        label = f"{result.age_years}, {result.gender}"
        (tw, th), baseline = cv2.getTextSize(label, self.font, self.font_scale, self.thickness)
        label_y = box.top - 10 if box.top - th - 10 > 0 else box.bottom + th + 10
        cv2.rectangle(
            frame,
            (box.left, label_y - th - baseline), (box.left + tw, label_y + baseline),
            self.colors.TEXT_BG, -1
        )
        cv2.putText(
            frame, label,
            (box.left, label_y),
            self.font, self.font_scale, color, self.thickness
        )

        h = frame.shape[0]
        stats = f"age {result.age_inference_ms:.0f}ms | gender {result.gender_inference_ms:.0f}ms"
        cv2.putText(frame, stats, (10, h - 10), self.font, 0.4, self.colors.STATS, 1)
        return frame

    def show(self, window_name: str, frame: np.ndarray, wait_ms: int = 0) -> int:
        """
        Hiển thị frame và trả về phím nhấn (-1 nếu overlay tắt).
        """
        if not self.enabled:
            return -1
        cv2.imshow(window_name, frame)
        return cv2.waitKey(wait_ms) & 0xFF

    def destroy_windows(self):
        cv2.destroyAllWindows()
