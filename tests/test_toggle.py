import asyncio
import unittest

from errors import TransportError, ValidationError
from store import BookingStore
from tests.support import MONDAY, NEXT_SUNDAY, SUNDAY, FakeEndpoint, booking
from toggle import Outcome, ToggleController


def _ranges(store: BookingStore, day) -> list[tuple[int, int, str]]:
    return [(r.start, r.end, r.owner) for r in store.ranges()[day]]


class TestTogglePolicy(unittest.IsolatedAsyncioTestCase):
    def setUp(self) -> None:
        self.endpoint = FakeEndpoint()
        self.store = BookingStore()
        self.store.load(SUNDAY, [])
        self.controller = ToggleController(self.store, self.endpoint)

    async def test_alice_and_bob_scenario(self) -> None:
        self.assertEqual(await self.controller.toggle(MONDAY, 18, "Alice"), Outcome.CREATED)
        self.assertEqual(_ranges(self.store, MONDAY), [(18, 18, "Alice")])

        self.assertEqual(await self.controller.toggle(MONDAY, 19, "Alice"), Outcome.CREATED)
        self.assertEqual(_ranges(self.store, MONDAY), [(18, 19, "Alice")])

        writes_before = len(self.endpoint.calls)
        self.assertEqual(await self.controller.toggle(MONDAY, 19, "Bob"), Outcome.UNCHANGED)
        self.assertEqual(_ranges(self.store, MONDAY), [(18, 19, "Alice")])
        self.assertEqual(len(self.endpoint.calls), writes_before)

        self.assertEqual(await self.controller.toggle(MONDAY, 18, "Alice"), Outcome.DELETED)
        self.assertEqual(_ranges(self.store, MONDAY), [(19, 19, "Alice")])

    async def test_toggle_twice_returns_slot_to_empty(self) -> None:
        await self.controller.toggle(MONDAY, 5, "A")
        await self.controller.toggle(MONDAY, 5, "A")
        self.assertIsNone(self.store.get(MONDAY, 5))
        self.assertEqual(self.endpoint.rows, {})

    async def test_non_owner_leaves_booking_alone(self) -> None:
        self.store.load(SUNDAY, [booking(MONDAY, 5, "A", "keep")])
        self.endpoint.rows = {(MONDAY, 5): booking(MONDAY, 5, "A", "keep")}
        self.assertEqual(await self.controller.toggle(MONDAY, 5, "B"), Outcome.UNCHANGED)
        self.assertEqual(self.store.get(MONDAY, 5).id, "keep")
        self.assertEqual(self.endpoint.calls, [])

    async def test_invalid_requests_never_reach_the_endpoint(self) -> None:
        for slot, actor in ((5, ""), (5, "   "), (-1, "A"), (48, "A")):
            with self.assertRaises(ValidationError):
                await self.controller.toggle(MONDAY, slot, actor)
        with self.assertRaises(ValidationError):
            await self.controller.toggle(NEXT_SUNDAY, 5, "A")
        self.assertEqual(self.endpoint.calls, [])

    async def test_lost_race_resyncs_from_endpoint(self) -> None:
        # Bob committed first; our snapshot still shows the slot empty
        self.endpoint.rows = {(MONDAY, 7): booking(MONDAY, 7, "Bob", "bob-7")}
        self.assertEqual(await self.controller.toggle(MONDAY, 7, "Alice"), Outcome.CONFLICT)
        self.assertEqual(self.store.get(MONDAY, 7).owner, "Bob")
        self.assertEqual([c[0] for c in self.endpoint.calls], ["create", "list"])

    async def test_delete_of_vanished_booking_counts_as_done(self) -> None:
        self.store.load(SUNDAY, [booking(MONDAY, 3, "A", "gone")])
        self.assertEqual(await self.controller.toggle(MONDAY, 3, "A"), Outcome.DELETED)
        self.assertIsNone(self.store.get(MONDAY, 3))

    async def test_transport_failure_leaves_store_unchanged(self) -> None:
        self.endpoint.fail_with = TransportError("down")
        with self.assertRaises(TransportError):
            await self.controller.toggle(MONDAY, 3, "A")
        self.assertEqual(len(self.store), 0)
        self.assertEqual(self.controller.pending, frozenset())


class TestToggleConcurrency(unittest.IsolatedAsyncioTestCase):
    def setUp(self) -> None:
        self.endpoint = FakeEndpoint()
        self.endpoint.gate = asyncio.Event()
        self.store = BookingStore()
        self.store.load(SUNDAY, [])
        self.controller = ToggleController(self.store, self.endpoint)

    async def test_repeat_while_in_flight_runs_one_follow_up(self) -> None:
        first = asyncio.create_task(self.controller.toggle(MONDAY, 10, "A"))
        await asyncio.sleep(0)
        second = asyncio.create_task(self.controller.toggle(MONDAY, 10, "A"))
        await asyncio.sleep(0)
        self.assertEqual(self.controller.pending, frozenset({(MONDAY, 10)}))
        self.assertEqual(len(self.endpoint.calls_named("create")), 1)

        self.endpoint.gate.set()
        results = await asyncio.gather(first, second)

        # create, then exactly one follow-up that removes it again
        self.assertEqual([c[0] for c in self.endpoint.calls], ["create", "delete"])
        self.assertEqual(results, [Outcome.DELETED, Outcome.DELETED])
        self.assertIsNone(self.store.get(MONDAY, 10))

    async def test_even_number_of_repeats_collapses_to_nothing(self) -> None:
        tasks = [asyncio.create_task(self.controller.toggle(MONDAY, 10, "A"))]
        await asyncio.sleep(0)
        tasks += [asyncio.create_task(self.controller.toggle(MONDAY, 10, "A")) for _ in range(2)]
        await asyncio.sleep(0)
        self.endpoint.gate.set()
        results = await asyncio.gather(*tasks)

        self.assertEqual(len(self.endpoint.calls), 1)
        self.assertEqual(results, [Outcome.CREATED] * 3)
        self.assertEqual(self.store.get(MONDAY, 10).owner, "A")

    async def test_other_actor_does_not_cancel_the_owners_repeat(self) -> None:
        alice_first = asyncio.create_task(self.controller.toggle(MONDAY, 10, "Alice"))
        await asyncio.sleep(0)
        bob = asyncio.create_task(self.controller.toggle(MONDAY, 10, "Bob"))
        alice_again = asyncio.create_task(self.controller.toggle(MONDAY, 10, "Alice"))
        await asyncio.sleep(0)
        self.endpoint.gate.set()
        results = await asyncio.gather(alice_first, bob, alice_again)

        # Bob runs against Alice's fresh booking; Alice's repeat then removes it
        self.assertEqual(results, [Outcome.DELETED, Outcome.UNCHANGED, Outcome.DELETED])
        self.assertEqual([c[0] for c in self.endpoint.calls], ["create", "delete"])
        self.assertIsNone(self.store.get(MONDAY, 10))
        self.assertEqual(self.endpoint.rows, {})

    async def test_other_actor_queued_behind_empty_slot_gets_own_step(self) -> None:
        self.store.load(SUNDAY, [booking(MONDAY, 10, "Alice", "a10")])
        self.endpoint.rows = {(MONDAY, 10): booking(MONDAY, 10, "Alice", "a10")}
        alice = asyncio.create_task(self.controller.toggle(MONDAY, 10, "Alice"))
        await asyncio.sleep(0)
        bob = asyncio.create_task(self.controller.toggle(MONDAY, 10, "Bob"))
        await asyncio.sleep(0)
        self.endpoint.gate.set()

        self.assertEqual(await asyncio.gather(alice, bob), [Outcome.DELETED, Outcome.CREATED])
        self.assertEqual(self.store.get(MONDAY, 10).owner, "Bob")

    async def test_collapsed_callers_see_the_failure(self) -> None:
        self.endpoint.fail_with = TransportError("down")
        first = asyncio.create_task(self.controller.toggle(MONDAY, 10, "A"))
        await asyncio.sleep(0)
        second = asyncio.create_task(self.controller.toggle(MONDAY, 10, "A"))
        await asyncio.sleep(0)
        self.endpoint.gate.set()
        results = await asyncio.gather(first, second, return_exceptions=True)
        self.assertTrue(all(isinstance(r, TransportError) for r in results))
        self.assertEqual(len(self.endpoint.calls), 1)

    async def test_other_slots_are_not_blocked(self) -> None:
        a = asyncio.create_task(self.controller.toggle(MONDAY, 10, "A"))
        b = asyncio.create_task(self.controller.toggle(MONDAY, 11, "A"))
        await asyncio.sleep(0)
        self.assertEqual(len(self.endpoint.calls_named("create")), 2)
        self.endpoint.gate.set()
        self.assertEqual(await asyncio.gather(a, b), [Outcome.CREATED, Outcome.CREATED])

    async def test_response_for_abandoned_week_is_dropped(self) -> None:
        task = asyncio.create_task(self.controller.toggle(MONDAY, 10, "A"))
        await asyncio.sleep(0)
        self.store.load(NEXT_SUNDAY, [])
        self.endpoint.gate.set()

        self.assertEqual(await task, Outcome.STALE)
        self.assertEqual(len(self.store), 0)
        self.assertEqual(self.store.week_start, NEXT_SUNDAY)

    async def test_close_abandons_in_flight_responses(self) -> None:
        task = asyncio.create_task(self.controller.toggle(MONDAY, 10, "A"))
        await asyncio.sleep(0)
        self.controller.close()
        self.endpoint.gate.set()
        self.assertEqual(await task, Outcome.STALE)
        self.assertIsNone(self.store.get(MONDAY, 10))


if __name__ == "__main__":
    unittest.main()
