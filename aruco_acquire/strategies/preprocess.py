from abc import ABC, abstractmethod
from typing import Iterable

import cv2

from ..ip_types import Frame

BLUR_SIGMA = 5.0
SHARPEN_AMOUNT = 1.5


class PreprocessStrategy(ABC):
    @abstractmethod
    def apply(self, f: Frame) -> Frame: ...


class GrayscaleFrame(PreprocessStrategy):
    def apply(self, f: Frame) -> Frame:
        if f.image.ndim == 2:
            return f
        code = cv2.COLOR_BGRA2GRAY if f.image.shape[2] == 4 else cv2.COLOR_BGR2GRAY
        g = cv2.cvtColor(f.image, code)
        return Frame(f.idx, f.ts_iso, g)


class UnsharpMaskFrame(PreprocessStrategy):
    """sharp = gray + amount * (gray - blur(gray)), saturated to uint8.

    The Gaussian kernel extent is derived from ``sigma`` (ksize=(0, 0)),
    sigmaY is left at 0 so OpenCV mirrors sigma, and the border uses
    cv2.BORDER_DEFAULT.
    """

    def __init__(self, sigma: float = BLUR_SIGMA, amount: float = SHARPEN_AMOUNT):
        self.sigma = sigma
        self.amount = amount

    def apply(self, f: Frame) -> Frame:
        gray = f.image
        blurred = cv2.GaussianBlur(gray, (0, 0), self.sigma, sigmaY=0, borderType=cv2.BORDER_DEFAULT)
        sharp = cv2.addWeighted(gray, 1.0 + self.amount, blurred, -self.amount, 0)
        return Frame(f.idx, f.ts_iso, sharp)


class PreprocessChain(PreprocessStrategy):
    def __init__(self, steps: Iterable[PreprocessStrategy]):
        self.steps = list(steps)

    def apply(self, f: Frame) -> Frame:
        for step in self.steps:
            f = step.apply(f)
        return f


def default_chain() -> PreprocessChain:
    return PreprocessChain([GrayscaleFrame(), UnsharpMaskFrame()])


_DEFAULT = default_chain()


def preprocess(f: Frame) -> Frame:
    """Grayscale, blur and sharpen a frame for marker detection."""
    return _DEFAULT.apply(f)
