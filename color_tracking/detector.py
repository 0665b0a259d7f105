# detector.py
"""HSV colour-blob detector: segmentation mask + largest connected region."""
from __future__ import annotations

import logging
from typing import Optional, Union

import cv2
import numpy as np

from color_tracking.common import DetectedObject, Frame, FrameFormatError
from color_tracking.config import DetectorConfig

logger = logging.getLogger(__name__)

_MORPH_KERNEL = np.ones((3, 3), np.uint8)


class ColorObjectDetector:
    def __init__(self, config: DetectorConfig):
        self.config = config
        rng = config.color_range
        self._lower = np.array(rng.lower, dtype=np.uint8)
        self._upper = np.array(rng.upper, dtype=np.uint8)

    # ------------------------------------------------------------------ #
    #   S E G M E N T A T I O N
    # ------------------------------------------------------------------ #
    def segment(self, frame: Union[Frame, np.ndarray]) -> np.ndarray:
        """
        Binary uint8 mask (0 / 255) of the pixels whose HSV value lies inside
        the configured range, bounds inclusive. Same H×W as the input.
        """
        bgr = frame.to_bgr() if isinstance(frame, Frame) else frame
        if bgr.ndim != 3 or bgr.shape[2] != 3:
            raise FrameFormatError(f"expected an HxWx3 image, got shape {bgr.shape}")
        if bgr.dtype != np.uint8:
            raise FrameFormatError(f"expected uint8 pixels, got {bgr.dtype}")

        if self.config.blur_size:
            k = self.config.blur_size
            bgr = cv2.GaussianBlur(bgr, (k, k), 0)

        hsv = cv2.cvtColor(bgr, cv2.COLOR_BGR2HSV)
        mask = cv2.inRange(hsv, self._lower, self._upper)

        if self.config.morph_iterations:
            mask = cv2.erode(mask, _MORPH_KERNEL, iterations=self.config.morph_iterations)
            mask = cv2.dilate(mask, _MORPH_KERNEL, iterations=self.config.morph_iterations)
        return mask

    # ------------------------------------------------------------------ #
    #   B L O B   S E L E C T I O N
    # ------------------------------------------------------------------ #
    def find_largest_object(self, mask: np.ndarray) -> Optional[DetectedObject]:
        """
        Largest 8-connected foreground region of ``mask`` or ``None``.

        Equal-area ties go to the lowest label (``argmax`` keeps the first
        maximum); OpenCV's labelling is fixed for a given mask, so the pick
        is repeatable.
        """
        if mask.ndim != 2:
            raise FrameFormatError(f"expected a 2-D mask, got shape {mask.shape}")
        binary = (mask > 0).astype(np.uint8)
        n_labels, labels, stats, centroids = cv2.connectedComponentsWithStats(
            binary, connectivity=8
        )
        if n_labels <= 1:
            return None

        areas = stats[1:, cv2.CC_STAT_AREA]
        label = int(np.argmax(areas)) + 1
        area = int(stats[label, cv2.CC_STAT_AREA])
        cx, cy = centroids[label]

        points = cv2.findNonZero((labels == label).astype(np.uint8))
        _, radius = cv2.minEnclosingCircle(points)

        if radius < self.config.min_radius:
            logger.debug(
                "Largest blob too small (r=%.1f < %.1f)", radius, self.config.min_radius
            )
            return None
        return DetectedObject(x=float(cx), y=float(cy), radius=float(radius), area=area)

    def detect(self, frame: Union[Frame, np.ndarray]) -> Optional[DetectedObject]:
        return self.find_largest_object(self.segment(frame))
