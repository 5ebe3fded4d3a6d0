import pytest

from animation import AnimationScheduler, Clock


class FakeClock:
    def __init__(self, step=0.016):
        self.step = step
        self.now = 0.0

    def get_elapsed_time(self):
        self.now += self.step
        return self.now


def test_clock_is_monotonic():
    clock = Clock()
    first = clock.get_elapsed_time()
    second = clock.get_elapsed_time()
    assert 0.0 <= first <= second


def test_tick_returning_false_stops_the_loop():
    seen = []

    def tick(elapsed):
        seen.append(elapsed)
        return len(seen) < 3

    frames = AnimationScheduler(tick, clock=FakeClock()).start()
    assert frames == 3
    assert seen == sorted(seen)


def test_max_frames_bounds_the_loop():
    scheduler = AnimationScheduler(lambda elapsed: None, clock=FakeClock(), max_frames=5)
    assert scheduler.start() == 5
    assert not scheduler.running


def test_stop_from_inside_a_tick():
    scheduler = None

    def tick(elapsed):
        if scheduler.frame == 1:
            scheduler.stop()

    scheduler = AnimationScheduler(tick, clock=FakeClock())
    assert scheduler.start() == 2


def test_exception_in_tick_propagates_and_resets_state():
    def tick(elapsed):
        raise ValueError("bad frame")

    scheduler = AnimationScheduler(tick, clock=FakeClock())
    with pytest.raises(ValueError):
        scheduler.start()
    assert not scheduler.running


def test_start_is_not_reentrant():
    scheduler = None
    errors = []

    def tick(elapsed):
        try:
            scheduler.start()
        except RuntimeError as e:
            errors.append(e)
        return False

    scheduler = AnimationScheduler(tick, clock=FakeClock())
    scheduler.start()
    assert len(errors) == 1
