"""
OpenCV overlay for tracker output.

Shapes and text are drawn white on a black layer and combined with the frame
by absolute difference, so the overlay inverts whatever lies underneath.
"""

from typing import Optional

import cv2
import numpy as np

from salience.pipeline import FrameAnalysis
from salience.tracker import TrackResult


class OverlayRenderer:
    WHITE = (255, 255, 255)
    FONT = cv2.FONT_HERSHEY_SIMPLEX

    def __init__(self, line_width: int = 1, font_scale: Optional[float] = None):
        self._lw = line_width
        self._fs = font_scale

    def _font_scale(self, h: int, w: int) -> float:
        return self._fs if self._fs is not None else max(0.4, min(h, w) / 1600)

    def render(self, frame: np.ndarray, result: Optional[TrackResult]) -> np.ndarray:
        h, w = frame.shape[:2]
        fs = self._font_scale(h, w)
        ft = max(1, int(fs * 1.5))
        layer = np.zeros_like(frame)

        info = (f"State: {result.state} | ID: {result.id or 'N/A'}"
                if result is not None else "No Result")
        (_, th), _ = cv2.getTextSize(info, self.FONT, fs, ft)
        cv2.putText(layer, info, (10, 10 + th), self.FONT, fs, self.WHITE, ft, cv2.LINE_AA)

        if result is None or not result.locked:
            self._centered_text(layer, "SCANNING...", w // 2, h // 2, fs, ft)
        else:
            x1 = int(round(result.x * w));  y1 = int(round(result.y * h))
            x2 = int(round((result.x + result.w) * w)) - 1
            y2 = int(round((result.y + result.h) * h)) - 1
            x2 = max(x1, min(x2, w - 1));  y2 = max(y1, min(y2, h - 1))
            cv2.rectangle(layer, (x1, y1), (x2, y2), self.WHITE, self._lw)
            self._centered_text(layer, result.id, (x1 + x2) // 2, (y1 + y2) // 2, fs, ft)

        return cv2.absdiff(frame, layer)

    def _centered_text(self, img, text, cx, cy, fs, ft) -> None:
        (tw, th), _ = cv2.getTextSize(text, self.FONT, fs, ft)
        cv2.putText(img, text, (cx - tw // 2, cy + th // 2),
                    self.FONT, fs, self.WHITE, ft, cv2.LINE_AA)

    def draw_hud(self, frame: np.ndarray, frame_idx: int, fps: float,
                 profile: str, analysis: Optional[FrameAnalysis]) -> np.ndarray:
        img = frame.copy()
        h, w = img.shape[:2]
        fscale = max(0.4, min(h, w) / 1600)
        fthick = max(1, int(fscale * 1.5))
        line_h = int(fscale * 28) + 6

        if analysis is None:
            lines = [f"Frame: {frame_idx:5d}  FPS: {fps:4.1f}", "*** NO FRAME ***"]
        else:
            lines = [
                f"Frame: {frame_idx:5d}  FPS: {fps:4.1f}  Profile: {profile}",
                f"Grid: {analysis.grid.width}x{analysis.grid.height}  "
                f"Blobs: {len(analysis.blobs)}  Cand: {len(analysis.candidates)}  "
                f"Seed: {analysis.seed_score:.1f}",
            ]

        max_tw = max(cv2.getTextSize(l, self.FONT, fscale, fthick)[0][0] for l in lines)
        overlay = img.copy()
        cv2.rectangle(overlay, (0, h - len(lines) * line_h - 6), (max_tw + 12, h), (0, 0, 0), -1)
        img = cv2.addWeighted(overlay, 0.5, img, 0.5, 0)
        for i, line in enumerate(lines):
            y = h - (len(lines) - i - 1) * line_h - 8
            cv2.putText(img, line, (6, y), self.FONT, fscale, (220, 220, 220), fthick, cv2.LINE_AA)
        return img

    @staticmethod
    def score_heatmap(analysis: FrameAnalysis, size) -> np.ndarray:
        s = analysis.scores
        lo, hi = float(s.min()), float(s.max())
        norm = np.zeros_like(s) if hi <= lo else (s - lo) / (hi - lo)
        heat = cv2.applyColorMap((norm * 255).astype(np.uint8), cv2.COLORMAP_JET)
        return cv2.resize(heat, size, interpolation=cv2.INTER_NEAREST)

    @staticmethod
    def mask_view(analysis: FrameAnalysis, size) -> np.ndarray:
        """Raw activity in grey, cleaned mask in white, winner box in green."""
        view = np.zeros(analysis.active.shape + (3,), dtype=np.uint8)
        view[analysis.active] = (90, 90, 90)
        view[analysis.cleaned] = (255, 255, 255)
        view = cv2.resize(view, size, interpolation=cv2.INTER_NEAREST)
        if analysis.winner is not None:
            gw, gh = analysis.grid.width, analysis.grid.height
            sx, sy = size[0] / gw, size[1] / gh
            b = analysis.winner
            cv2.rectangle(view,
                          (int(b.min_x * sx), int(b.min_y * sy)),
                          (int((b.max_x + 1) * sx) - 1, int((b.max_y + 1) * sy) - 1),
                          (0, 230, 0), 2)
        return view

    def build_debug_panel(self, analysis: FrameAnalysis, annotated: np.ndarray) -> np.ndarray:
        h, w = annotated.shape[:2]
        heat = self.score_heatmap(analysis, (w, h))
        mask = self.mask_view(analysis, (w, h))
        for panel, text in [(heat, "SCORE MAP"), (mask, "MASK (post-morphology)"),
                            (annotated, "TRACKED")]:
            cv2.putText(panel, text, (6, h - 10), cv2.FONT_HERSHEY_SIMPLEX,
                        0.55, (200, 200, 200), 1, cv2.LINE_AA)
        return np.hstack([heat, mask, annotated])
