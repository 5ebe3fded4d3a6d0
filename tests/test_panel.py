import pygame
import pytest

from panel import ParameterPanel
from particle import GalaxyParameters


class Settings:
    opacity = 0.5


@pytest.fixture
def panel():
    panel = ParameterPanel("Galaxy")
    panel.layout(800)
    return panel


def _event(kind, **attrs):
    return pygame.event.Event(kind, **attrs)


def test_drag_updates_value_but_commits_only_on_release(panel):
    params = GalaxyParameters(count=1000, size=0.02)
    commits = []
    slider = panel.bind(params, 'count').range(100, 100000, 100).on_commit(commits.append)
    track = slider.track
    y = track.centery

    assert panel.handle_event(_event(pygame.MOUSEBUTTONDOWN, pos=(track.x, y), button=1))
    assert params.count == 100
    panel.handle_event(_event(pygame.MOUSEMOTION, pos=(track.centerx, y), rel=(1, 0), buttons=(1, 0, 0)))
    panel.handle_event(_event(pygame.MOUSEMOTION, pos=(track.right, y), rel=(1, 0), buttons=(1, 0, 0)))
    assert params.count == 100000
    assert commits == []

    assert panel.handle_event(_event(pygame.MOUSEBUTTONUP, pos=(track.right, y), button=1))
    assert commits == [100000]
    assert not slider.dragging


def test_values_snap_to_step_and_clamp(panel):
    params = GalaxyParameters()
    slider = panel.bind(params, 'size').range(0.001, 0.1, 0.001)
    assert slider.snap(0.02049) == pytest.approx(0.020)
    assert slider.snap(5.0) == pytest.approx(0.1)
    assert slider.snap(-1.0) == pytest.approx(0.001)


def test_wheel_steps_and_commits_once_per_notch(panel):
    params = GalaxyParameters(count=1000)
    commits = []
    slider = panel.bind(params, 'count').range(100, 100000, 100).on_commit(commits.append)

    panel.handle_event(_event(pygame.MOUSEMOTION, pos=slider.rect.center, rel=(0, 0), buttons=(0, 0, 0)))
    panel.handle_event(_event(pygame.MOUSEWHEEL, x=0, y=2))

    assert params.count == 1200
    assert commits == [1200]


def test_plain_attributes_can_be_bound(panel):
    settings = Settings()
    slider = panel.bind(settings, 'opacity').range(0.0, 1.0, 0.1)
    slider.value = 0.26
    assert settings.opacity == pytest.approx(0.3)


def test_clicks_outside_the_panel_pass_through(panel):
    panel.bind(GalaxyParameters(), 'count').range(100, 100000, 100)
    assert not panel.handle_event(_event(pygame.MOUSEBUTTONDOWN, pos=(10, 10), button=1))
    assert not panel.handle_event(_event(pygame.MOUSEBUTTONUP, pos=(10, 10), button=1))


def test_hidden_panel_ignores_input(panel):
    params = GalaxyParameters(count=1000)
    slider = panel.bind(params, 'count').range(100, 100000, 100)
    panel.handle_event(_event(pygame.KEYDOWN, key=pygame.K_h))
    assert not panel.visible
    assert not panel.handle_event(_event(pygame.MOUSEBUTTONDOWN, pos=slider.track.topleft, button=1))
    assert params.count == 1000


def test_invalid_range_is_rejected(panel):
    with pytest.raises(ValueError):
        panel.bind(GalaxyParameters(), 'size').range(1.0, 0.0, 0.1)


def test_panel_draws(screen, panel):
    panel.bind(GalaxyParameters(), 'count').range(100, 100000, 100)
    panel.layout(screen.get_width())
    panel.draw(screen)
