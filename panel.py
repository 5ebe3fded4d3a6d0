# panel.py
"""
Debug panel with sliders bound to numeric fields.

A slider writes every intermediate value to its target while the user
drags, and fires its commit handlers only when the drag ends.
"""
import logging
import math
import pygame
from typing import Any, Callable, List, Optional, Tuple

from constants import UI_PANEL_WIDTH, UI_BACKGROUND_ALPHA

# --- Data Contracts ---
#
# class ParameterPanel:
#   - bind(target, name) -> Slider
#   - handle_event(event) -> bool: True if the panel consumed the event.
#   - layout(window_width): places the panel along the right edge.
#   - draw(surface): renders the panel.
#
# class Slider:
#   - range(min, max, step) -> Slider
#   - on_commit(handler(value)) -> Slider
#   - Invariants: the value is clamped to [min, max] and snapped to step.
#     Commit handlers fire once per finished interaction (mouse release or
#     one wheel notch), never on intermediate drag values.

SLIDER_HEIGHT = 36
TRACK_HEIGHT = 6
PANEL_PADDING = 12


class Slider:
    def __init__(self, target: Any, name: str):
        self.target = target
        self.name = name
        self.minimum = 0.0
        self.maximum = 1.0
        self.step = 0.01
        self.rect = pygame.Rect(0, 0, 0, 0)
        self.dragging = False
        self._handlers: List[Callable[[float], None]] = []

    def range(self, minimum: float, maximum: float, step: float) -> "Slider":
        if maximum <= minimum or step <= 0:
            raise ValueError(f"Invalid range for slider '{self.name}': {minimum}..{maximum} step {step}")
        self.minimum, self.maximum, self.step = minimum, maximum, step
        return self

    def on_commit(self, handler: Callable[[float], None]) -> "Slider":
        self._handlers.append(handler)
        return self

    @property
    def value(self) -> float:
        if hasattr(self.target, 'get_parameter'):
            return self.target.get_parameter(self.name)
        return getattr(self.target, self.name)

    @value.setter
    def value(self, value: float) -> None:
        value = self.snap(value)
        if hasattr(self.target, 'set_parameter'):
            self.target.set_parameter(self.name, value)
        else:
            setattr(self.target, self.name, value)

    def snap(self, value: float) -> float:
        value = min(max(value, self.minimum), self.maximum)
        steps = round((value - self.minimum) / self.step)
        decimals = max(0, -math.floor(math.log10(self.step))) + 1
        return round(min(self.minimum + steps * self.step, self.maximum), decimals)

    @property
    def track(self) -> pygame.Rect:
        return pygame.Rect(self.rect.x, self.rect.bottom - TRACK_HEIGHT - 4,
                           self.rect.width, TRACK_HEIGHT)

    def value_at(self, x: int) -> float:
        track = self.track
        fraction = (x - track.x) / max(track.width, 1)
        return self.minimum + min(max(fraction, 0.0), 1.0) * (self.maximum - self.minimum)

    def commit(self) -> None:
        value = self.value
        logging.debug(f"Slider '{self.name}' committed at {value}.")
        for handler in self._handlers:
            handler(value)


class ParameterPanel:
    def __init__(self, title: str = "Debug"):
        self.title = title
        self.sliders: List[Slider] = []
        self.visible = True
        self.window_width = UI_PANEL_WIDTH
        self.rect = pygame.Rect(0, 0, UI_PANEL_WIDTH, PANEL_PADDING)
        self.mouse_pos: Tuple[int, int] = (-1, -1)
        self._active: Optional[Slider] = None
        self._font: Optional[pygame.font.Font] = None

    def bind(self, target: Any, name: str) -> Slider:
        slider = Slider(target, name)
        self.sliders.append(slider)
        self.layout(self.window_width)
        return slider

    def layout(self, window_width: int) -> None:
        self.window_width = window_width
        x = window_width - UI_PANEL_WIDTH
        y = PANEL_PADDING + 20
        for slider in self.sliders:
            slider.rect = pygame.Rect(x + PANEL_PADDING, y,
                                      UI_PANEL_WIDTH - 2 * PANEL_PADDING, SLIDER_HEIGHT)
            y += SLIDER_HEIGHT + PANEL_PADDING
        self.rect = pygame.Rect(x, 0, UI_PANEL_WIDTH, y)

    def _slider_at(self, pos: Tuple[int, int]) -> Optional[Slider]:
        for slider in self.sliders:
            if slider.rect.collidepoint(pos):
                return slider
        return None

    def handle_event(self, event: pygame.event.Event) -> bool:
        if event.type == pygame.KEYDOWN and event.key == pygame.K_h:
            self.visible = not self.visible
            return True
        if not self.visible:
            return False

        if event.type == pygame.MOUSEMOTION:
            self.mouse_pos = event.pos
            if self._active is not None:
                self._active.value = self._active.value_at(event.pos[0])
                return True
            return bool(self.rect.collidepoint(event.pos))

        if event.type == pygame.MOUSEBUTTONDOWN and event.button == 1:
            slider = self._slider_at(event.pos)
            if slider is not None:
                self._active = slider
                slider.dragging = True
                slider.value = slider.value_at(event.pos[0])
                return True
            return bool(self.rect.collidepoint(event.pos))

        if event.type == pygame.MOUSEBUTTONUP and event.button == 1 and self._active is not None:
            slider, self._active = self._active, None
            slider.dragging = False
            slider.value = slider.value_at(event.pos[0])
            slider.commit()
            return True

        if event.type == pygame.MOUSEWHEEL:
            slider = self._slider_at(self.mouse_pos)
            if slider is not None and self._active is None:
                slider.value = slider.value + event.y * slider.step
                slider.commit()
                return True

        return False

    def draw(self, surface: pygame.Surface) -> None:
        if not self.visible:
            return
        if self._font is None:
            self._font = pygame.font.SysFont(None, 18)

        background = pygame.Surface(self.rect.size, pygame.SRCALPHA)
        background.fill((40, 40, 40, UI_BACKGROUND_ALPHA))
        surface.blit(background, self.rect.topleft)

        title = self._font.render(self.title, True, (255, 255, 255))
        surface.blit(title, (self.rect.x + PANEL_PADDING, PANEL_PADDING // 2))

        for slider in self.sliders:
            value = slider.value
            label = self._font.render(f"{slider.name}: {value:g}", True, (200, 200, 200))
            surface.blit(label, slider.rect.topleft)

            track = slider.track
            pygame.draw.rect(surface, (80, 80, 80), track, border_radius=3)
            fraction = (value - slider.minimum) / (slider.maximum - slider.minimum)
            filled = track.copy()
            filled.width = int(track.width * fraction)
            color = (110, 160, 255) if slider.dragging else (80, 130, 220)
            pygame.draw.rect(surface, color, filled, border_radius=3)
