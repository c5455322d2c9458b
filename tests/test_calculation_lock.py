import threading

import pytest

from app.services.errors import CalculationInProgressError
from app.utils.calculation_lock import CalculationGuard


def test_same_scope_times_out():
    guard = CalculationGuard()

    with guard.hold(("competition", 1)):
        with pytest.raises(CalculationInProgressError, match="competition 1"):
            with guard.hold(("competition", 1), timeout=0.05):
                pass

    with guard.hold(("competition", 1), timeout=0.05):
        pass


def test_different_scopes_are_independent():
    guard = CalculationGuard()
    entered = []

    with guard.hold(("competition", 1)):
        with guard.hold(("competition", 2), timeout=0.05):
            entered.append(("competition", 2))
        with guard.hold(("league", 1), timeout=0.05):
            entered.append(("league", 1))

    assert entered == [("competition", 2), ("league", 1)]


def test_lock_released_after_error():
    guard = CalculationGuard()

    with pytest.raises(ValueError):
        with guard.hold(("league", 3)):
            raise ValueError("boom")

    with guard.hold(("league", 3), timeout=0.05):
        pass


def test_idle_scopes_are_forgotten():
    guard = CalculationGuard()

    for competition_id in range(50):
        with guard.hold(("competition", competition_id)):
            assert ("competition", competition_id) in guard._locks

    with guard.hold(("league", 1)):
        with pytest.raises(CalculationInProgressError):
            with guard.hold(("league", 1), timeout=0.01):
                pass
        assert list(guard._locks) == [("league", 1)]

    assert guard._locks == {}


def test_waiting_caller_runs_after_release():
    guard = CalculationGuard()
    order = []
    started = threading.Event()
    release = threading.Event()

    def first():
        with guard.hold(("competition", 9)):
            started.set()
            release.wait(timeout=5)
            order.append("first")

    def second():
        started.wait(timeout=5)
        with guard.hold(("competition", 9), timeout=5):
            order.append("second")

    threads = [threading.Thread(target=first), threading.Thread(target=second)]
    for thread in threads:
        thread.start()
    started.wait(timeout=5)
    release.set()
    for thread in threads:
        thread.join(timeout=5)

    assert order == ["first", "second"]
    assert guard._locks == {}
