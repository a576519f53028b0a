from __future__ import annotations

import math

import numpy as np
from PIL import Image


class ProcessingService:
    """Pure NumPy image processing. Inputs and outputs are float32 RGB arrays
    of shape (H, W, 3) normalized to [0, 1].

    No method writes to its input; every result is a new array.
    """

    LUMA_WEIGHTS = np.array([0.299, 0.587, 0.114], dtype=np.float32)
    SEPIA_MATRIX = np.array(
        [
            [0.393, 0.769, 0.189],
            [0.349, 0.686, 0.168],
            [0.272, 0.534, 0.131],
        ],
        dtype=np.float32,
    )

    # --------- filters ---------

    # Grayscale (Luminosity): 0.299*R + 0.587*G + 0.114*B, replicated to 3 channels
    @staticmethod
    def grayscale(matrix: np.ndarray) -> np.ndarray:
        luma = ProcessingService._weighted_sum(matrix, ProcessingService.LUMA_WEIGHTS)
        return np.repeat(luma[..., None], 3, axis=2).astype(np.float32)

    # Sepia: out = M @ rgb, clipped to 1
    @staticmethod
    def sepia(matrix: np.ndarray) -> np.ndarray:
        m = ProcessingService.SEPIA_MATRIX
        out = np.stack([ProcessingService._weighted_sum(matrix, row) for row in m], axis=-1)
        return np.clip(out, 0.0, 1.0).astype(np.float32)

    # Elementwise so each pixel's result does not depend on the block it is in
    @staticmethod
    def _weighted_sum(matrix: np.ndarray, weights: np.ndarray) -> np.ndarray:
        mat = matrix.astype(np.float32)
        return mat[..., 0] * weights[0] + mat[..., 1] * weights[1] + mat[..., 2] * weights[2]

    # Invert: I_out = 1 - I_in
    @staticmethod
    def invert(matrix: np.ndarray) -> np.ndarray:
        return (1.0 - matrix.astype(np.float32)).astype(np.float32)

    @staticmethod
    def gaussian_kernel(radius: float) -> np.ndarray:
        """1-D normalized Gaussian with sigma = radius, half width ceil(3 * sigma)."""
        sigma = float(radius)
        half = max(1, int(math.ceil(3.0 * sigma)))
        xs = np.arange(-half, half + 1, dtype=np.float64)
        weights = np.exp(-(xs**2) / (2.0 * sigma * sigma))
        return (weights / weights.sum()).astype(np.float32)

    @staticmethod
    def pad_for_kernel(matrix: np.ndarray, half: int) -> np.ndarray:
        # Replicate border pixels so every output pixel sees a full window
        return np.pad(matrix.astype(np.float32), ((half, half), (half, half), (0, 0)), mode="edge")

    @staticmethod
    def convolve_rows(
        padded: np.ndarray, kernel: np.ndarray, row_start: int, row_stop: int
    ) -> np.ndarray:
        """Separable convolution producing output rows [row_start, row_stop).

        ``padded`` is the input padded by ``len(kernel) // 2`` on both spatial
        axes. Only reads from it.
        """
        half = len(kernel) // 2
        width = padded.shape[1] - 2 * half
        rows = row_stop - row_start
        window = padded[row_start : row_stop + 2 * half]
        vertical = np.zeros((rows, window.shape[1], window.shape[2]), dtype=np.float32)
        for i, w in enumerate(kernel):
            vertical += w * window[i : i + rows]
        out = np.zeros((rows, width, window.shape[2]), dtype=np.float32)
        for i, w in enumerate(kernel):
            out += w * vertical[:, i : i + width]
        return out

    @staticmethod
    def gaussian_blur(matrix: np.ndarray, radius: float) -> np.ndarray:
        kernel = ProcessingService.gaussian_kernel(radius)
        padded = ProcessingService.pad_for_kernel(matrix, len(kernel) // 2)
        return ProcessingService.convolve_rows(padded, kernel, 0, matrix.shape[0])

    # Unsharp mask: I_out = 2 * I - blur(I)
    @staticmethod
    def unsharp_combine(matrix: np.ndarray, blurred: np.ndarray) -> np.ndarray:
        out = 2.0 * matrix.astype(np.float32) - blurred.astype(np.float32)
        return np.clip(out, 0.0, 1.0).astype(np.float32)

    @staticmethod
    def sharpen(matrix: np.ndarray) -> np.ndarray:
        return ProcessingService.unsharp_combine(
            matrix, ProcessingService.gaussian_blur(matrix, 1.0)
        )

    # Blend: I_out = I + (F - I) * intensity
    @staticmethod
    def blend(original: np.ndarray, filtered: np.ndarray, intensity: float) -> np.ndarray:
        a = float(np.clip(intensity, 0.0, 1.0))
        if a >= 1.0:
            return filtered.astype(np.float32)
        orig = original.astype(np.float32)
        if a <= 0.0:
            return orig.copy()
        return (orig + (filtered.astype(np.float32) - orig) * a).astype(np.float32)

    # --------- adjustments ---------

    # Brightness: I_out = I_in * factor
    @staticmethod
    def adjust_brightness(matrix: np.ndarray, factor: float) -> np.ndarray:
        out = np.clip(matrix.astype(np.float32) * float(factor), 0.0, 1.0)
        return out.astype(np.float32)

    # Contrast around mid gray: I_out = (I_in - 0.5) * factor + 0.5
    @staticmethod
    def adjust_contrast(matrix: np.ndarray, factor: float) -> np.ndarray:
        out = np.clip((matrix.astype(np.float32) - 0.5) * float(factor) + 0.5, 0.0, 1.0)
        return out.astype(np.float32)

    @staticmethod
    def adjust_saturation(matrix: np.ndarray, factor: float) -> np.ndarray:
        h, s, l = ProcessingService.rgb_to_hsl(matrix)
        s = np.clip(s * float(factor), 0.0, 1.0)
        return ProcessingService.hsl_to_rgb(h, s, l)

    @staticmethod
    def adjust_hue(matrix: np.ndarray, shift: int) -> np.ndarray:
        h, s, l = ProcessingService.rgb_to_hsl(matrix)
        h = np.mod(h + float(shift), 360.0)
        return ProcessingService.hsl_to_rgb(h, s, l)

    # Gamma: I_out = I_in ** (1 / gamma); gamma > 1 brightens
    @staticmethod
    def adjust_gamma(matrix: np.ndarray, gamma: float) -> np.ndarray:
        mat = np.clip(matrix.astype(np.float32), 0.0, 1.0)
        return np.power(mat, 1.0 / float(gamma)).astype(np.float32)

    @staticmethod
    def rgb_to_hsl(matrix: np.ndarray) -> tuple[np.ndarray, np.ndarray, np.ndarray]:
        """Vectorised RGB -> (hue degrees in [0, 360), saturation, lightness)."""
        mat = np.clip(matrix[..., :3].astype(np.float32), 0.0, 1.0)
        r, g, b = mat[..., 0], mat[..., 1], mat[..., 2]
        mx = np.max(mat, axis=2)
        mn = np.min(mat, axis=2)
        delta = mx - mn
        l = (mx + mn) / 2.0
        chroma = delta > 0.0
        safe_delta = np.where(chroma, delta, 1.0)

        low_den = np.where(chroma, mx + mn, 1.0)
        high_den = np.where(chroma, 2.0 - mx - mn, 1.0)
        s = np.where(l < 0.5, delta / low_den, delta / high_den)
        s = np.where(chroma, s, 0.0)

        h_r = np.mod((g - b) / safe_delta, 6.0)
        h_g = (b - r) / safe_delta + 2.0
        h_b = (r - g) / safe_delta + 4.0
        h = np.where(mx == r, h_r, np.where(mx == g, h_g, h_b)) * 60.0
        h = np.where(chroma, h, 0.0)
        return h.astype(np.float32), s.astype(np.float32), l.astype(np.float32)

    @staticmethod
    def hsl_to_rgb(h: np.ndarray, s: np.ndarray, l: np.ndarray) -> np.ndarray:
        c = (1.0 - np.abs(2.0 * l - 1.0)) * s
        hp = np.mod(h, 360.0) / 60.0
        x = c * (1.0 - np.abs(np.mod(hp, 2.0) - 1.0))
        m = l - c / 2.0
        zero = np.zeros_like(c)
        sector = np.floor(hp).astype(np.int32) % 6
        conditions = [sector == i for i in range(6)]
        r = np.select(conditions, [c, x, zero, zero, x, c])
        g = np.select(conditions, [x, c, c, x, zero, zero])
        b = np.select(conditions, [zero, zero, x, c, c, x])
        out = np.stack([r + m, g + m, b + m], axis=-1)
        return np.clip(out, 0.0, 1.0).astype(np.float32)

    # --------- geometry ---------

    # Clockwise rotations; np.rot90 turns counter-clockwise for positive k
    @staticmethod
    def rotate90(matrix: np.ndarray) -> np.ndarray:
        return np.ascontiguousarray(np.rot90(matrix, k=-1, axes=(0, 1)))

    @staticmethod
    def rotate180(matrix: np.ndarray) -> np.ndarray:
        return np.ascontiguousarray(matrix[::-1, ::-1])

    @staticmethod
    def rotate270(matrix: np.ndarray) -> np.ndarray:
        return np.ascontiguousarray(np.rot90(matrix, k=1, axes=(0, 1)))

    @staticmethod
    def flip_horizontal(matrix: np.ndarray) -> np.ndarray:
        return np.ascontiguousarray(matrix[:, ::-1])

    @staticmethod
    def flip_vertical(matrix: np.ndarray) -> np.ndarray:
        return np.ascontiguousarray(matrix[::-1, :])

    # Crop region [y:y+height, x:x+width]
    @staticmethod
    def crop(matrix: np.ndarray, x: int, y: int, width: int, height: int) -> np.ndarray:
        h, w = matrix.shape[:2]
        if x < 0 or y < 0 or width < 1 or height < 1 or x + width > w or y + height > h:
            raise ValueError(
                f"Crop rect ({x}, {y}, {width}, {height}) is outside image bounds ({w}x{h})"
            )
        return matrix[y : y + height, x : x + width].astype(np.float32, copy=True)

    # Downsample to fit inside (max_width, max_height), keeping aspect ratio. Never upscales.
    @staticmethod
    def resize_to_fit(matrix: np.ndarray, max_width: int, max_height: int) -> np.ndarray:
        h, w = matrix.shape[:2]
        if w <= max_width and h <= max_height:
            return matrix
        ratio = min(max_width / w, max_height / h)
        new_w = max(1, int(w * ratio))
        new_h = max(1, int(h * ratio))
        img = Image.fromarray(ProcessingService.to_uint8(matrix))
        resized = img.resize((new_w, new_h), Image.Resampling.LANCZOS)
        return np.asarray(resized).astype(np.float32) / 255.0

    # --------- helpers ---------
    @staticmethod
    def to_uint8(matrix: np.ndarray) -> np.ndarray:
        return np.rint(np.clip(matrix[..., :3], 0.0, 1.0) * 255.0).astype(np.uint8)
