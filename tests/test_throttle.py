"""Admission, ordering and failure behaviour of the bounded scheduler."""
from __future__ import annotations

import asyncio
import unittest

from safari_epub.throttle import Throttle, ThrottleConfigError


class TestThrottleConstruction(unittest.TestCase):

    def test_rejects_non_int_ceiling(self):
        for bad in ("3", 2.5, None, True):
            with self.subTest(ceiling=bad):
                with self.assertRaises(ThrottleConfigError):
                    Throttle(bad)

    def test_config_error_is_a_type_error(self):
        with self.assertRaises(TypeError):
            Throttle("3")

    def test_rejects_non_positive_ceiling(self):
        for bad in (0, -1):
            with self.subTest(ceiling=bad):
                with self.assertRaises(ThrottleConfigError):
                    Throttle(bad)

    def test_initial_state(self):
        throttle = Throttle(3)
        self.assertEqual(throttle.max_concurrent, 3)
        self.assertEqual(throttle.current, 0)
        self.assertEqual(throttle.pending, 0)


class TestThrottleScheduling(unittest.IsolatedAsyncioTestCase):

    async def test_never_exceeds_ceiling(self):
        for ceiling in (1, 2, 3, 5):
            with self.subTest(ceiling=ceiling):
                throttle = Throttle(ceiling)
                running = 0
                peak = 0

                async def work(i):
                    nonlocal running, peak
                    running += 1
                    peak = max(peak, running)
                    self.assertLessEqual(throttle.current, ceiling)
                    await asyncio.sleep(0.001 * (i % 4))
                    running -= 1
                    return i

                results = await throttle.map([lambda i=i: work(i) for i in range(12)])
                self.assertEqual(results, list(range(12)))
                self.assertEqual(peak, ceiling)
                self.assertEqual(throttle.current, 0)
                self.assertEqual(throttle.pending, 0)

    async def test_admission_is_fifo(self):
        throttle = Throttle(2)
        started: list[int] = []
        # early items are slow, so later slots are freed out of order
        durations = [0.03, 0.01, 0.02, 0.0, 0.01, 0.0]

        async def work(i):
            started.append(i)
            await asyncio.sleep(durations[i])
            return i

        await throttle.map([lambda i=i: work(i) for i in range(len(durations))])
        self.assertEqual(started, list(range(len(durations))))

    async def test_results_follow_submission_order(self):
        throttle = Throttle(3)
        finished: list[int] = []

        async def work(i):
            await asyncio.sleep(0.01 * (5 - i))
            finished.append(i)
            return i * 10

        results = await throttle.map([lambda i=i: work(i) for i in range(5)])
        self.assertEqual(results, [0, 10, 20, 30, 40])
        self.assertNotEqual(finished, sorted(finished))

    async def test_queued_items_wait(self):
        throttle = Throttle(1)
        gate = asyncio.Event()

        async def work():
            await gate.wait()

        tasks = [asyncio.create_task(throttle(work)) for _ in range(3)]
        await asyncio.sleep(0)
        self.assertEqual(throttle.current, 1)
        self.assertEqual(throttle.pending, 2)

        gate.set()
        await asyncio.gather(*tasks)
        self.assertEqual(throttle.current, 0)
        self.assertEqual(throttle.pending, 0)

    async def test_failure_is_isolated(self):
        throttle = Throttle(1)

        async def ok(i):
            await asyncio.sleep(0)
            return i

        async def boom():
            raise RuntimeError("boom")

        fns = [lambda: ok(0), boom, lambda: ok(2), lambda: ok(3)]
        results = await throttle.map(fns, return_exceptions=True)

        self.assertEqual(results[0], 0)
        self.assertIsInstance(results[1], RuntimeError)
        self.assertEqual(results[2:], [2, 3])
        self.assertEqual(throttle.current, 0)

    async def test_failure_reaches_only_its_caller(self):
        throttle = Throttle(2)

        async def boom():
            raise ValueError("bad item")

        async def ok():
            return "fine"

        with self.assertRaises(ValueError):
            await throttle(boom)
        self.assertEqual(await throttle(ok), "fine")
        self.assertEqual(throttle.current, 0)


if __name__ == "__main__":
    unittest.main()
