import threading

import pytest

from rsi_scanner.services.alerts.edge_detector import (
    RsiObservation,
    ThresholdEdgeDetector,
    classify,
)
from rsi_scanner.services.alerts.notification_log import NotificationLog


def _feed(detector, values, symbol="BTCUSDT", timeframe="15m"):
    events = []
    for v in values:
        events.extend(detector.evaluate([RsiObservation(symbol, timeframe, v)]))
    return events


def test_only_transitions_into_extremes_fire():
    det = ThresholdEdgeDetector()
    events = _feed(det, [65, 72, 75, 68, 71])
    assert [(e.kind, e.rsi) for e in events] == [("overbought", 72.0), ("overbought", 71.0)]


def test_oversold_edges_and_direct_flip():
    det = ThresholdEdgeDetector()
    events = _feed(det, [50, 30, 25, 80, 20])
    assert [e.kind for e in events] == ["oversold", "overbought", "oversold"]


def test_thresholds_are_inclusive():
    assert classify(70.0) == "overbought"
    assert classify(30.0) == "oversold"
    assert classify(69.99) == "neutral"
    assert classify(30.01) == "neutral"


def test_keys_are_independent_and_never_removed():
    det = ThresholdEdgeDetector()
    events = det.evaluate(
        [
            RsiObservation("BTCUSDT", "15m", 80),
            RsiObservation("BTCUSDT", "1h", 50),
            RsiObservation("ETHUSDT", "15m", 10),
        ]
    )
    assert {(e.symbol, e.timeframe, e.kind) for e in events} == {
        ("BTCUSDT", "15m", "overbought"),
        ("ETHUSDT", "15m", "oversold"),
    }
    det.evaluate([RsiObservation("BTCUSDT", "15m", 50)])
    assert set(det.state) == {("BTCUSDT", "15m"), ("BTCUSDT", "1h"), ("ETHUSDT", "15m")}
    assert det.status("ETHUSDT", "15m") == "oversold"
    assert det.status("BTCUSDT", "15m") == "neutral"
    assert det.status("DOGEUSDT", "15m") == "neutral"


def test_seeded_state_suppresses_repeat_alert():
    det = ThresholdEdgeDetector(initial_state={("BTCUSDT", "15m"): "overbought"})
    assert det.evaluate([RsiObservation("BTCUSDT", "15m", 78)]) == []


def test_state_is_swapped_not_mutated():
    det = ThresholdEdgeDetector()
    det.evaluate([RsiObservation("BTCUSDT", "15m", 80)])
    before = det.state
    det.evaluate([RsiObservation("BTCUSDT", "15m", 20), RsiObservation("ETHUSDT", "15m", 50)])
    assert dict(before) == {("BTCUSDT", "15m"): "overbought"}
    assert det.state[("BTCUSDT", "15m")] == "oversold"
    with pytest.raises(TypeError):
        det.state[("BTCUSDT", "15m")] = "neutral"


def test_failed_evaluation_installs_nothing():
    det = ThresholdEdgeDetector()
    det.evaluate([RsiObservation("BTCUSDT", "15m", 80)])

    def observations():
        yield RsiObservation("BTCUSDT", "15m", 20)
        raise RuntimeError("source broke mid-cycle")

    with pytest.raises(RuntimeError):
        det.evaluate(observations())
    assert dict(det.state) == {("BTCUSDT", "15m"): "overbought"}


def test_custom_thresholds_validated():
    with pytest.raises(ValueError):
        ThresholdEdgeDetector(overbought=30, oversold=70)
    det = ThresholdEdgeDetector(overbought=80, oversold=20)
    assert _feed(det, [75, 79]) == []


def test_concurrent_cycles_lose_no_keys():
    det = ThresholdEdgeDetector()

    def run(symbol):
        for v in (50, 75, 50, 25):
            det.evaluate([RsiObservation(symbol, "15m", v)])

    threads = [threading.Thread(target=run, args=(f"S{i}",)) for i in range(8)]
    for t in threads:
        t.start()
    for t in threads:
        t.join()
    assert len(det.state) == 8
    assert all(v == "oversold" for v in det.state.values())


def test_notification_log_is_bounded_newest_first():
    det = ThresholdEdgeDetector()
    log = NotificationLog(limit=3)
    for v in [80, 20, 80, 20, 80]:
        log.extend(det.evaluate([RsiObservation("BTCUSDT", "1h", v)]))
    items = log.list()
    assert len(items) == 3
    assert [n.event.kind for n in items] == ["overbought", "oversold", "overbought"]
    assert items[0].id > items[1].id > items[2].id
    assert log.unread_count() == 3
    log.mark_all_read()
    assert log.unread_count() == 0
    assert len(log.list(limit=1)) == 1
    assert log.clear() == 3
    assert len(log) == 0
