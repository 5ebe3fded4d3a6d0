import pygame
import pytest

from overlay import FadeTransition, LoadingOverlay


def test_fade_holds_through_the_delay_then_reaches_zero():
    fade = FadeTransition(start_time=10.0, delay=1.0, duration=3.0)
    assert fade.value(10.0) == 1.0
    assert fade.value(11.0) == 1.0
    assert 0.0 < fade.value(12.5) < 1.0
    assert fade.value(14.0) == 0.0
    assert fade.value(100.0) == 0.0
    assert fade.finished(14.0) and not fade.finished(13.9)


def test_fade_is_monotonic():
    fade = FadeTransition(0.0, 0.5, 3.0)
    samples = [fade.value(t / 10) for t in range(0, 40)]
    assert samples == sorted(samples, reverse=True)


def test_overlay_tracks_progress_without_regressing():
    overlay = LoadingOverlay()
    overlay.on_progress("m.glb", 50, 100)
    overlay.on_progress("m.glb", 20, 100)
    assert overlay.progress == pytest.approx(0.5)
    overlay.on_progress("m.glb", 0, 0)
    assert overlay.progress == pytest.approx(0.5)


def test_overlay_fades_after_load():
    overlay = LoadingOverlay(fade_delay=0.5, fade_duration=1.0)
    overlay.update(5.0)
    assert overlay.alpha == 1.0 and overlay.visible

    overlay.on_loaded(now=2.0)
    assert not overlay.bar_visible
    overlay.update(2.4)
    assert overlay.alpha == 1.0
    overlay.update(3.5)
    assert overlay.alpha == 0.0
    assert not overlay.visible


def test_second_load_notification_does_not_restart_the_fade():
    overlay = LoadingOverlay(fade_delay=0.0, fade_duration=1.0)
    overlay.on_loaded(now=0.0)
    overlay.on_loaded(now=5.0)
    overlay.update(1.0)
    assert overlay.alpha == 0.0


def test_overlay_draws_veil_and_bar():
    target = pygame.Surface((100, 50), depth=32)
    target.fill((255, 255, 255))
    overlay = LoadingOverlay()
    overlay.on_progress("m.glb", 1, 2)
    overlay.draw(target)

    assert target.get_at((90, 5))[:3] == (0, 0, 0)
    assert target.get_at((10, 25))[:3] == (255, 255, 255)
    assert target.get_at((90, 25))[:3] == (0, 0, 0)
