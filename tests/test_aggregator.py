import threading
import time
import unittest

from parkwatch.core.errors import UpstreamUnavailable
from parkwatch.services.aggregator import CycleState, WaitTimesAggregator
from parkwatch.services.alerts import AlertEngine
from parkwatch.services.dispatch import FanOutDispatcher, NotificationInbox
from parkwatch.services.fetcher import Fetcher
from tests.helpers import FakeClock, FakeSource, attraction_record, live_payload, make_registry


class RejectingDispatcher:
    def __init__(self):
        self.calls = 0

    def dispatch(self, event) -> bool:
        self.calls += 1
        return False


class ExplodingDispatcher:
    def dispatch(self, event) -> bool:
        raise RuntimeError("push gateway down")


def build(source, *venue_ids, dispatcher=None, fetch_timeout=5.0, engine=None):
    registry = make_registry(*venue_ids)
    engine = engine or AlertEngine(clock=FakeClock())
    aggregator = WaitTimesAggregator(
        registry,
        Fetcher(registry, source),
        engine,
        dispatcher,
        fetch_timeout=fetch_timeout,
        clock=FakeClock(),
    )
    return aggregator, engine


class CycleTest(unittest.TestCase):
    def setUp(self) -> None:
        self.source = FakeSource(
            live={
                "mk-entity": live_payload(attraction_record("space-mountain", "Space Mountain", wait=25)),
                "epcot-entity": live_payload(attraction_record("test-track", "Test Track", wait=70)),
            }
        )

    def test_full_cycle_builds_snapshot_in_registry_order(self) -> None:
        aggregator, _ = build(self.source, "mk", "epcot")
        self.addCleanup(aggregator.close)

        report = aggregator.refresh()

        self.assertFalse(report.is_partial)
        self.assertEqual(report.snapshot.venue_ids, ["mk", "epcot"])
        self.assertEqual(report.snapshot.sample_for("test-track").minutes, 70)
        self.assertIs(aggregator.latest, report)
        self.assertEqual(aggregator.cycles_completed, 1)
        self.assertEqual(aggregator.state, CycleState.IDLE)

    def test_failed_venue_is_isolated(self) -> None:
        self.source.live["hs-entity"] = UpstreamUnavailable("HTTP 500", status_code=500)
        aggregator, _ = build(self.source, "mk", "hs", "epcot")
        self.addCleanup(aggregator.close)

        report = aggregator.refresh()

        self.assertTrue(report.is_partial)
        self.assertEqual(report.snapshot.venue_ids, ["mk", "epcot"])
        self.assertEqual(list(report.failures), ["hs"])
        self.assertEqual(report.failures["hs"].error, "UpstreamUnavailable")
        self.assertIsNotNone(report.snapshot.sample_for("space-mountain"))

    def test_unexpected_exception_is_recorded_as_failure(self) -> None:
        self.source.live["hs-entity"] = RuntimeError("boom")
        aggregator, _ = build(self.source, "mk", "hs")
        self.addCleanup(aggregator.close)

        report = aggregator.refresh()

        self.assertEqual(report.failures["hs"].error, "RuntimeError")
        self.assertEqual(report.snapshot.venue_ids, ["mk"])

    def test_all_venues_failing_yields_empty_snapshot(self) -> None:
        aggregator, _ = build(FakeSource(), "mk", "epcot")
        self.addCleanup(aggregator.close)

        report = aggregator.refresh()

        self.assertEqual(report.snapshot.parks, ())
        self.assertEqual(sorted(report.failures), ["epcot", "mk"])

    def test_slow_venue_times_out_without_blocking_others(self) -> None:
        gate = threading.Event()
        self.addCleanup(gate.set)
        self.source.gates["epcot-entity"] = gate
        aggregator, _ = build(self.source, "mk", "epcot", fetch_timeout=0.2)
        self.addCleanup(aggregator.close)

        report = aggregator.refresh()

        self.assertEqual(report.snapshot.venue_ids, ["mk"])
        self.assertEqual(report.failures["epcot"].error, "UpstreamTimeout")

    def test_hung_venue_does_not_starve_healthy_ones_across_cycles(self) -> None:
        gate = threading.Event()
        self.addCleanup(gate.set)
        self.source.gates["epcot-entity"] = gate
        aggregator, _ = build(self.source, "mk", "epcot", fetch_timeout=0.3)
        self.addCleanup(aggregator.close)

        reports = [aggregator.refresh() for _ in range(4)]

        for report in reports:
            self.assertEqual(report.snapshot.venue_ids, ["mk"])
            self.assertEqual(list(report.failures), ["epcot"])
            self.assertEqual(report.failures["epcot"].error, "UpstreamTimeout")
        # epcot was requested once; later cycles skip it while that fetch is still running
        self.assertEqual(self.source.live_calls, 5)

        gate.set()
        deadline = time.monotonic() + 5
        report = aggregator.refresh()
        while "epcot" not in report.snapshot.venue_ids and time.monotonic() < deadline:
            time.sleep(0.05)
            report = aggregator.refresh()

        self.assertEqual(report.snapshot.venue_ids, ["mk", "epcot"])
        self.assertFalse(report.is_partial)

    def test_alerts_evaluated_and_dispatched(self) -> None:
        inbox = NotificationInbox()
        aggregator, engine = build(self.source, "mk", "epcot", dispatcher=inbox)
        self.addCleanup(aggregator.close)
        rule_id = engine.add_rule("space-mountain", 30)
        engine.add_rule("test-track", 30)

        report = aggregator.refresh()

        self.assertEqual([e.rule_id for e in report.events], [rule_id])
        self.assertEqual(report.dispatch_failures, ())
        self.assertEqual([e.rule_id for e in inbox.recent()], [rule_id])

    def test_dispatch_failures_do_not_abort_cycle(self) -> None:
        rejecting = RejectingDispatcher()
        inbox = NotificationInbox()
        dispatcher = FanOutDispatcher([rejecting, ExplodingDispatcher(), inbox])
        aggregator, engine = build(self.source, "mk", dispatcher=dispatcher)
        self.addCleanup(aggregator.close)
        rule_id = engine.add_rule("space-mountain", 30)

        report = aggregator.refresh()

        self.assertEqual(report.dispatch_failures, (rule_id,))
        self.assertEqual(rejecting.calls, 1)
        self.assertEqual(len(inbox), 1)
        self.assertEqual(aggregator.state, CycleState.IDLE)

    def test_direct_dispatcher_rejection_is_recorded(self) -> None:
        aggregator, engine = build(self.source, "mk", dispatcher=RejectingDispatcher())
        self.addCleanup(aggregator.close)
        rule_id = engine.add_rule("space-mountain", 30)

        with self.assertLogs("parkwatch.services.aggregator", level="WARNING"):
            report = aggregator.refresh()

        self.assertEqual(report.dispatch_failures, (rule_id,))


class SingleFlightTest(unittest.TestCase):
    def setUp(self) -> None:
        self.gate = threading.Event()
        self.addCleanup(self.gate.set)
        self.source = FakeSource(
            live={
                "mk-entity": live_payload(attraction_record("space-mountain", "Space Mountain")),
                "epcot-entity": live_payload(attraction_record("test-track", "Test Track")),
            }
        )
        self.source.gates["mk-entity"] = self.gate
        self.aggregator, _ = build(self.source, "mk", "epcot")
        self.addCleanup(self.aggregator.close)

    def _start_cycle(self) -> tuple[threading.Thread, list]:
        results: list = []
        worker = threading.Thread(target=lambda: results.append(self.aggregator.refresh()))
        worker.start()
        self.assertTrue(self.source.entered.wait(5))
        self.assertEqual(self.aggregator.state, CycleState.RUNNING)
        return worker, results

    def test_tick_is_noop_while_cycle_in_flight(self) -> None:
        worker, results = self._start_cycle()

        self.assertIsNone(self.aggregator.tick())

        self.gate.set()
        worker.join(5)
        self.assertEqual(len(results), 1)
        self.assertEqual(self.source.live_calls, 2)
        self.assertEqual(self.aggregator.cycles_completed, 1)

    def test_manual_refresh_joins_in_flight_cycle(self) -> None:
        worker, results = self._start_cycle()
        joined: list = []
        joiner = threading.Thread(target=lambda: joined.append(self.aggregator.refresh()))
        joiner.start()
        time.sleep(0.2)

        self.gate.set()
        worker.join(5)
        joiner.join(5)

        self.assertEqual(len(results), 1)
        self.assertIs(joined[0], results[0])
        self.assertEqual(self.source.live_calls, 2)
        self.assertEqual(self.aggregator.cycles_completed, 1)

    def test_next_refresh_after_cycle_runs_again(self) -> None:
        self.gate.set()
        self.aggregator.refresh()
        self.aggregator.refresh()

        self.assertEqual(self.aggregator.cycles_completed, 2)
        self.assertEqual(self.source.live_calls, 4)
        self.assertEqual(self.aggregator.state, CycleState.IDLE)


if __name__ == "__main__":  # pragma: no cover
    unittest.main()
