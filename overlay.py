# overlay.py
"""
Loading overlay: a black veil with a progress bar that fades away once
the model has loaded.
"""
import logging
import pygame
from typing import Optional

from constants import (
    LOADING_BAR_COLOR, LOADING_BAR_HEIGHT, OVERLAY_FADE_DELAY, OVERLAY_FADE_DURATION
)


class FadeTransition:
    """
    One-shot tween evaluated from the clock. It holds no per-frame state,
    so sampling it never blocks or drives the frame loop.
    """

    def __init__(self, start_time: float, delay: float, duration: float,
                 start_value: float = 1.0, end_value: float = 0.0):
        self.start_time = start_time
        self.delay = delay
        self.duration = duration
        self.start_value = start_value
        self.end_value = end_value

    def value(self, now: float) -> float:
        t = now - self.start_time - self.delay
        if t <= 0:
            return self.start_value
        if self.duration <= 0 or t >= self.duration:
            return self.end_value
        # quadratic ease-out
        progress = 1.0 - (1.0 - t / self.duration) ** 2
        return self.start_value + (self.end_value - self.start_value) * progress

    def finished(self, now: float) -> bool:
        return now - self.start_time >= self.delay + self.duration


class LoadingOverlay:
    def __init__(self, fade_delay: float = OVERLAY_FADE_DELAY,
                 fade_duration: float = OVERLAY_FADE_DURATION):
        self.fade_delay = fade_delay
        self.fade_duration = fade_duration
        self.alpha = 1.0
        self.progress = 0.0
        self.bar_visible = True
        self.transition: Optional[FadeTransition] = None
        self._surface: Optional[pygame.Surface] = None

    def on_progress(self, url: str, loaded: int, total: int) -> None:
        ratio = loaded / total if total > 0 else 0.0
        self.progress = max(self.progress, min(ratio, 1.0))

    def on_loaded(self, now: float) -> None:
        if self.transition is not None:
            return
        self.progress = 1.0
        self.bar_visible = False
        self.transition = FadeTransition(now, self.fade_delay, self.fade_duration)
        logging.info(f"Overlay fade scheduled ({self.fade_delay}s delay, {self.fade_duration}s).")

    def update(self, now: float) -> None:
        if self.transition is not None:
            self.alpha = self.transition.value(now)

    @property
    def visible(self) -> bool:
        return self.alpha > 0.0

    def draw(self, target: pygame.Surface) -> None:
        if not self.visible:
            return
        size = target.get_size()
        if self._surface is None or self._surface.get_size() != size:
            self._surface = pygame.Surface(size, pygame.SRCALPHA)
        self._surface.fill((0, 0, 0, int(255 * self.alpha)))
        target.blit(self._surface, (0, 0))

        if self.bar_visible:
            width, height = size
            bar_rect = pygame.Rect(0, height // 2 - LOADING_BAR_HEIGHT // 2,
                                   int(width * self.progress), LOADING_BAR_HEIGHT)
            pygame.draw.rect(target, LOADING_BAR_COLOR, bar_rect)
