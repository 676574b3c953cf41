import pytest

from cryptoexchange.utils.rate_limiter import (
    PUBLIC,
    TRADING,
    RateLimiter,
    RateWindow,
    check_and_record,
)


def test_appends_timestamp_to_window() -> None:
    """Tests that the attempt is recorded at the end of the window."""
    window = RateWindow([555])
    assert check_and_record(666, 10, window)
    assert list(window) == [555, 666]


def test_admits_while_within_limit() -> None:
    window = RateWindow([444, 555])
    assert check_and_record(666, 3, window)  # 3 calls < 1000ms apart


def test_rejects_when_over_limit() -> None:
    window = RateWindow([444, 555])
    assert not check_and_record(777, 2, window)


def test_evicts_entries_older_than_one_second() -> None:
    window = RateWindow([444, 555])
    assert check_and_record(1445, 2, window)
    assert list(window) == [555, 1445]


def test_entry_exactly_one_second_old_is_expired() -> None:
    """The boundary is open on the old side."""
    window = RateWindow([445, 446])
    assert check_and_record(1445, 2, window)
    assert list(window) == [446, 1445]


def test_rejected_attempts_still_occupy_the_window() -> None:
    """Retrying immediately after a rejection does not help."""
    window = RateWindow()
    assert check_and_record(0, 1, window)
    assert not check_and_record(10, 1, window)
    assert len(window) == 2

    # At 1005 the attempt at 0 is gone but the rejected one at 10 is not.
    assert not check_and_record(1005, 1, window)
    assert list(window) == [10, 1005]


@pytest.mark.parametrize("limit", [1, 3, 6, 10])
def test_burst_rejects_only_the_attempt_past_the_limit(limit: int) -> None:
    """Within one second, the first `limit` attempts pass and the next fails."""
    window = RateWindow()
    results = [check_and_record(1_000_000 + i * 10, limit, window) for i in range(limit + 1)]
    assert results == [True] * limit + [False]


@pytest.mark.parametrize(("limit", "spacing"), [(6, 167), (4, 250), (1, 1000), (2, 500)])
def test_steady_spacing_is_always_admitted(limit: int, spacing: int) -> None:
    window = RateWindow()
    for i in range(200):
        assert check_and_record(i * spacing, limit, window)
    assert len(window) <= limit


def test_fractional_limit() -> None:
    """Bitfinex allows 90 requests per minute, i.e. 1.5 per second."""
    window = RateWindow()
    assert check_and_record(0, 1.5, window)
    assert not check_and_record(1, 1.5, window)


def test_window_count_and_repr() -> None:
    window = RateWindow([1, 2, 2, 2, 3])
    assert window.count(2) == 3
    assert window.count(4) == 0
    assert repr(window) == "RateWindow(size=5, data=[1, 2, 2, 2, 3])"


def test_rate_limiter_keeps_rate_classes_independent() -> None:
    limiter = RateLimiter({PUBLIC: 1, TRADING: 2})
    assert limiter.check(PUBLIC, 0)
    assert not limiter.check(PUBLIC, 1)

    assert limiter.check(TRADING, 1)
    assert limiter.check(TRADING, 1)
    assert not limiter.check(TRADING, 1)

    assert len(limiter.window(PUBLIC)) == 2
    assert len(limiter.window(TRADING)) == 3
    assert limiter.collisions(TRADING, 1) == 3
    assert limiter.limit(TRADING) == 2


@pytest.mark.parametrize("bad_limit", [0, -1, True, "6", float("nan"), float("inf")])
def test_rate_limiter_rejects_invalid_limits(bad_limit: object) -> None:
    with pytest.raises(ValueError, match="must be a positive number"):
        RateLimiter({PUBLIC: bad_limit})  # type: ignore[dict-item]


@pytest.mark.parametrize("bad_limit", [0, -1, -0.5, float("nan"), float("inf")])
def test_check_and_record_rejects_invalid_limits(bad_limit: float) -> None:
    """An invalid limit raises instead of silently refusing every attempt."""
    window = RateWindow([100])
    with pytest.raises(ValueError, match="must be a positive number"):
        check_and_record(200, bad_limit, window)
    assert list(window) == [100]
