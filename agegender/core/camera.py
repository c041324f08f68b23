# agegender/core/camera.py
"""
Camera Manager module.

Chụp ảnh từ camera (OpenCV) và lưu ra file tạm, giống luồng
"mở camera -> chụp -> đọc lại ảnh full-size từ đường dẫn file".

Usage:
    from agegender.core.camera import CameraManager

    with CameraManager() as camera:
        photo_path = camera.capture_to_file("pictures")
"""
import os
import time
import logging
import tempfile
from typing import Optional
from dataclasses import dataclass

import cv2

logger = logging.getLogger(__name__)


@dataclass
class CameraConfig:
    """Cấu hình camera."""
    width: int = 640
    height: int = 480
    buffer_size: int = 1
    warmup_frames: int = 5
    max_retries: int = 3
    retry_delay: float = 2.0


def create_image_file(directory: str) -> str:
    """
    Tạo file tạm image*.jpg trong thư mục ảnh.

    Returns:
        Đường dẫn tuyệt đối của file (current photo path)
    """
    os.makedirs(directory, exist_ok=True)
    fd, path = tempfile.mkstemp(prefix="image", suffix=".jpg", dir=directory)
    os.close(fd)
    return os.path.abspath(path)


class CameraManager:
    """
    Quản lý camera với retry logic.
    """

    def __init__(self, device_id: int = 0, config: Optional[CameraConfig] = None):
        """
        Args:
            device_id: Camera ID (mặc định 0)
            config: CameraConfig object
        """
        self.device_id = device_id
        self.config = config or CameraConfig()

        self._cap: Optional[cv2.VideoCapture] = None
        self._is_open = False

    def open(self) -> bool:
        """
        Mở camera với retry logic.

        Returns:
            True nếu thành công
        """
        for attempt in range(self.config.max_retries):
            try:
                self._cap = cv2.VideoCapture(self.device_id)

                if self._cap.isOpened():
                    self._configure_camera()
                    self._warmup()
                    self._is_open = True
                    logger.info(f"📹 Camera {self.device_id} opened")
                    return True

            except cv2.error as e:
                logger.warning(f"Camera error: {e}")

            if attempt < self.config.max_retries - 1:
                logger.warning(
                    f"⚠️ Camera chưa sẵn sàng, thử lại "
                    f"({attempt + 1}/{self.config.max_retries})..."
                )
                time.sleep(self.config.retry_delay)

        logger.error("❌ Không thể kết nối camera!")
        return False

    def _configure_camera(self):
        if self._cap is None:
            return
        self._cap.set(cv2.CAP_PROP_FRAME_WIDTH, self.config.width)
        self._cap.set(cv2.CAP_PROP_FRAME_HEIGHT, self.config.height)
        self._cap.set(cv2.CAP_PROP_BUFFERSIZE, self.config.buffer_size)

    def _warmup(self):
        """Đọc vài frame đầu để camera ổn định (auto exposure)."""
        if self._cap is None:
            return
        for _ in range(self.config.warmup_frames):
            self._cap.grab()

    def read(self):
        """
        Đọc một frame từ camera.

        Returns:
            Frame BGR (numpy array) hoặc None nếu lỗi
        """
        if not self._is_open or self._cap is None:
            return None

        ret, frame = self._cap.read()
        if not ret:
            logger.warning("Không đọc được frame!")
            return None
        return frame

    def capture_to_file(self, directory: str) -> Optional[str]:
        """
        Chụp một ảnh và ghi ra file tạm trong directory.

        Returns:
            Đường dẫn file ảnh, hoặc None nếu chụp/ghi thất bại
        """
        frame = self.read()
        if frame is None:
            return None

        try:
            path = create_image_file(directory)
        except OSError as e:
            logger.error(f"Không tạo được file ảnh: {e}")
            return None

        if not cv2.imwrite(path, frame):
            logger.error(f"Không ghi được ảnh: {path}")
            os.remove(path)
            return None

        logger.debug(f"Ảnh đã lưu: {path}")
        return path

    def release(self):
        """Giải phóng camera."""
        if self._cap is not None:
            self._cap.release()
            self._cap = None
        if self._is_open:
            logger.info("📹 Camera released")
        self._is_open = False

    def is_opened(self) -> bool:
        return self._is_open and self._cap is not None and self._cap.isOpened()

    def __enter__(self):
        self.open()
        return self

    def __exit__(self, exc_type, exc_val, exc_tb):
        self.release()
        return False


def create_camera(device_id: int = 0, width: int = 640, height: int = 480) -> CameraManager:
    """Factory function tạo camera với resolution mong muốn."""
    config = CameraConfig(width=width, height=height)
    return CameraManager(device_id=device_id, config=config)
