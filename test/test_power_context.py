"""Unit tests for tracking the current power of a unit of work."""

import asyncio
import threading
import unittest

from ambit.power import BasePower, ContextSlot, NullSingularizer


class Power(BasePower):
    singularizer = NullSingularizer()

    @classmethod
    def _powers(cls):
        cls._power("admin?", lambda power: power.principal == "admin")


class OtherPower(BasePower):
    singularizer = NullSingularizer()

    @classmethod
    def _powers(cls):
        pass


class FailingPower(BasePower):
    @classmethod
    def _powers(cls):
        pass

    def __init__(self, principal):
        raise ValueError(f"cannot build power for {principal}")


class TestContextSlot(unittest.TestCase):
    def test_unset_by_default(self):
        self.assertIsNone(ContextSlot("test").get())

    def test_scoped_restores_value(self):
        slot = ContextSlot("test")
        slot.set("outer")

        with slot.scoped("inner") as value:
            self.assertEqual(value, "inner")
            self.assertEqual(slot.get(), "inner")

        self.assertEqual(slot.get(), "outer")

    def test_scoped_restores_value_on_error(self):
        slot = ContextSlot("test")

        with self.assertRaises(RuntimeError):
            with slot.scoped("inner"):
                raise RuntimeError("failure in body")

        self.assertIsNone(slot.get())


class TestWithPower(unittest.TestCase):
    def tearDown(self):
        Power.current = None

    def test_current_is_unset(self):
        self.assertIsNone(Power.current)

    def test_with_power_instance(self):
        power = Power("admin")

        with Power.with_power(power) as current:
            self.assertIs(current, power)
            self.assertIs(Power.current, power)
            self.assertTrue(Power.current.has_admin())

        self.assertIsNone(Power.current)

    def test_with_power_coerces_principal(self):
        with Power.with_power("admin") as current:
            self.assertIsInstance(current, Power)
            self.assertEqual(current.principal, "admin")
            self.assertIs(Power.current, current)

    def test_without_power(self):
        power = Power("admin")

        with Power.with_power(power):
            with Power.without_power() as current:
                self.assertIsNone(current)
                self.assertIsNone(Power.current)

            self.assertIs(Power.current, power)

    def test_nesting(self):
        outer = Power("outer")
        inner = Power("inner")

        with Power.with_power(outer):
            with Power.with_power(inner):
                self.assertIs(Power.current, inner)

                with Power.with_power("innermost"):
                    self.assertEqual(Power.current.principal, "innermost")

                self.assertIs(Power.current, inner)

            self.assertIs(Power.current, outer)

        self.assertIsNone(Power.current)

    def test_restored_when_body_fails(self):
        outer = Power("outer")
        Power.current = outer

        with self.assertRaises(RuntimeError):
            with Power.with_power("level 1"):
                with Power.with_power("level 2"):
                    with Power.with_power(None):
                        raise RuntimeError("failure in body")

        self.assertIs(Power.current, outer)

    def test_restored_when_inner_scope_fails(self):
        outer = Power("outer")

        with Power.with_power(outer):
            try:
                with Power.with_power("inner"):
                    raise KeyError("failure in body")
            except KeyError:
                pass

            self.assertIs(Power.current, outer)

    def test_failed_coercion_leaves_slot_unchanged(self):
        with self.assertRaises(ValueError):
            with FailingPower.with_power("someone"):
                self.fail("body must not run")

        self.assertIsNone(FailingPower.current)

    def test_direct_assignment(self):
        power = Power("admin")
        Power.current = power
        self.assertIs(Power.current, power)
        Power.current = None
        self.assertIsNone(Power.current)

    def test_slots_are_separate_per_class(self):
        with Power.with_power("admin"):
            self.assertIsNone(OtherPower.current)

            with OtherPower.with_power("someone"):
                self.assertEqual(Power.current.principal, "admin")
                self.assertEqual(OtherPower.current.principal, "someone")


class TestConcurrentUnitsOfWork(unittest.TestCase):
    def test_threads_are_isolated(self):
        barrier = threading.Barrier(2)
        observed = {}
        errors = []

        def work(name):
            try:
                with Power.with_power(name):
                    barrier.wait(timeout=5)
                    observed[name] = Power.current.principal
                    barrier.wait(timeout=5)
            except Exception as e:  # pylint: disable=broad-except
                errors.append(e)

        with Power.with_power("main"):
            threads = [threading.Thread(target=work, args=(name,)) for name in ("first", "second")]
            for thread in threads:
                thread.start()
            for thread in threads:
                thread.join()

            self.assertEqual(Power.current.principal, "main")

        self.assertEqual(errors, [])
        self.assertEqual(observed, {"first": "first", "second": "second"})

    def test_tasks_are_isolated(self):
        async def work(name, started, proceed):
            with Power.with_power(name):
                started.set()
                await proceed.wait()
                return Power.current.principal

        async def main():
            first_started, second_started = asyncio.Event(), asyncio.Event()
            proceed = asyncio.Event()

            first = asyncio.create_task(work("first", first_started, proceed))
            second = asyncio.create_task(work("second", second_started, proceed))
            await first_started.wait()
            await second_started.wait()
            current = Power.current
            proceed.set()

            return current, await first, await second

        self.assertEqual(asyncio.run(main()), (None, "first", "second"))


if __name__ == "__main__":
    unittest.main()
