# animation.py
"""
Per-frame scheduling.

The scheduler replaces a self-rescheduling frame callback with an explicit
loop that can be started and stopped, which keeps shutdown deterministic.
"""
import logging
import time
import pygame
from typing import Callable, Optional

# --- Data Contracts ---
#
# class Clock:
#   - get_elapsed_time() -> float: seconds since construction, monotonic.
#
# class AnimationScheduler:
#   - __init__(tick, clock=None, fps=None, max_frames=None)
#     - tick: called once per frame with the elapsed time. Returning False
#       stops the loop after that frame.
#   - start() -> int: runs until stop(), tick() returns False or
#     max_frames is reached. Returns the number of frames run.
#   - stop(): requests the loop to end after the current frame.


class Clock:
    def __init__(self):
        self.start_time = time.perf_counter()
        self.elapsed_time = 0.0

    def get_elapsed_time(self) -> float:
        self.elapsed_time = time.perf_counter() - self.start_time
        return self.elapsed_time


class AnimationScheduler:
    def __init__(self, tick: Callable[[float], Optional[bool]], clock: Optional[Clock] = None,
                 fps: Optional[int] = None, max_frames: Optional[int] = None):
        self.tick = tick
        self.clock = clock if clock is not None else Clock()
        self.fps = fps
        self.max_frames = max_frames
        self.running = False
        self.frame = 0
        self._pacer = pygame.time.Clock() if fps else None

    def start(self) -> int:
        if self.running:
            raise RuntimeError("Animation loop is already running.")
        self.running = True
        logging.info("Animation loop started.")
        try:
            while self.running:
                elapsed = self.clock.get_elapsed_time()
                if self.tick(elapsed) is False:
                    self.running = False
                self.frame += 1

                if self.max_frames is not None and self.frame >= self.max_frames:
                    logging.info(f"Reached max_frames ({self.max_frames}). Stopping animation loop.")
                    self.running = False

                if self._pacer is not None and self.running:
                    self._pacer.tick(self.fps)
        finally:
            self.running = False
        logging.info(f"Animation loop stopped after {self.frame} frames.")
        return self.frame

    def stop(self) -> None:
        self.running = False
