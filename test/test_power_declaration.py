"""Unit tests for the declaration of powers and the methods derived from them."""

import unittest

from ambit.power import (
    BasePower,
    NullSingularizer,
    PowerDefinition,
    PowerDefinitionInvalid,
    PowerNotSingularizable,
)
from test.utils import Post, StubSingularizer

FORMS = {"visible_posts": "visible_post", "notes": "note", "comments": "comment"}


class SamplePower(BasePower):
    singularizer = StubSingularizer(FORMS)

    @classmethod
    def _powers(cls):
        cls._power("visible_posts", lambda power: [Post(1), Post(2), Post(3)])
        cls._power("admin?", lambda power: power.principal == "admin")
        cls._power("staff", lambda power: ["alice", "bob"])
        cls._power("notes", lambda power, project: project)


class TestPowerDeclaration(unittest.TestCase):
    def test_collection_power_methods(self):
        """Test that a collection power derives accessor, query, assertion, ids and singular methods."""
        definition = SamplePower.powers["visible_posts"]

        self.assertEqual(
            definition.derived,
            frozenset(
                {
                    "visible_posts",
                    "has_visible_posts",
                    "require_visible_posts",
                    "visible_post_ids",
                    "has_visible_post",
                    "require_visible_post",
                }
            ),
        )
        for name in definition.derived:
            self.assertTrue(callable(getattr(SamplePower, name)), name)

        self.assertEqual(definition.singular, "visible_post")
        self.assertEqual(definition.ids_name, "visible_post_ids")
        self.assertFalse(definition.boolean_only)

    def test_boolean_power_methods(self):
        """Test that a power declared with a '?' suffix only derives a query and an assertion."""
        definition = SamplePower.powers["admin"]

        self.assertTrue(definition.boolean_only)
        self.assertEqual(definition.derived, frozenset({"has_admin", "require_admin"}))
        self.assertIsNone(definition.ids_name)
        self.assertIsNone(definition.singular)
        self.assertFalse(hasattr(SamplePower, "admin"))
        self.assertFalse(hasattr(SamplePower, "admin_ids"))

    def test_power_without_singular_form(self):
        """Test that a name without singular form still derives accessor, query, assertion and ids methods."""
        definition = SamplePower.powers["staff"]

        self.assertIsNone(definition.singular)
        self.assertEqual(
            definition.derived,
            frozenset({"staff", "has_staff", "require_staff", "staff_ids"}),
        )
        self.assertFalse(hasattr(SamplePower, "has_staf"))

        power = SamplePower("user")
        self.assertTrue(power.has_staff())
        power.require_staff()

    def test_predicate_is_called_with_instance_and_context(self):
        power = SamplePower("user")
        self.assertEqual(power.notes(["a"]), ["a"])
        self.assertTrue(power.has_notes(["a"]))
        self.assertFalse(power.has_notes([]))
        self.assertTrue(power.has_note(["a", "b"], "b"))

    def test_definitions_are_immutable(self):
        definition = SamplePower.powers["visible_posts"]
        self.assertIsInstance(definition, PowerDefinition)
        with self.assertRaises(Exception):
            definition.name = "other"  # type: ignore[misc]

    def test_powers_mapping_is_read_only(self):
        with self.assertRaises(TypeError):
            SamplePower.powers["other"] = SamplePower.powers["staff"]  # type: ignore[index]

    def test_power_ids_name(self):
        self.assertEqual(SamplePower.power_ids_name("visible_posts"), "visible_post_ids")
        self.assertEqual(SamplePower.power_ids_name("staff"), "staff_ids")

    def test_singularize_power_name(self):
        self.assertEqual(SamplePower.singularize_power_name("comments"), "comment")
        self.assertRaises(PowerNotSingularizable, SamplePower.singularize_power_name, "staff")

    def test_helpers_disabled_after_processing(self):
        """Test that declarations outside of _powers are ignored."""
        SamplePower.process_powers()
        self.assertTrue(SamplePower.powers_processed)

        with self.assertLogs("ambit.power", level="WARNING"):
            SamplePower._power("late_posts", lambda power: [])  # pylint: disable=protected-access

        self.assertNotIn("late_posts", SamplePower.powers)
        self.assertFalse(hasattr(SamplePower, "has_late_posts"))

    def test_abstract_base_cannot_be_instantiated(self):
        self.assertRaises(TypeError, BasePower)


class TestPowerProcessing(unittest.TestCase):
    def test_processing_is_lazy(self):
        """Test that declarations are processed on first use and only once."""
        calls = []

        class LazyPower(BasePower):
            singularizer = NullSingularizer()

            @classmethod
            def _powers(cls):
                calls.append(cls)
                cls._power("ready?", lambda power: True)

        self.assertTrue(LazyPower.powers_awaiting_processing)
        self.assertEqual(calls, [])

        self.assertTrue(LazyPower().has_ready())
        LazyPower()
        _ = LazyPower.powers

        self.assertEqual(calls, [LazyPower])

    def test_attribute_access_triggers_processing(self):
        class AttributePower(BasePower):
            singularizer = NullSingularizer()

            @classmethod
            def _powers(cls):
                cls._power("ready?", lambda power: True)

        self.assertTrue(callable(AttributePower.has_ready))
        self.assertTrue(AttributePower.powers_processed)
        self.assertRaises(AttributeError, getattr, AttributePower, "has_nothing")

    def test_redeclaration_overrides(self):
        """Test that the last declaration of a name wins and leaves no stale methods behind."""

        class OverridePower(BasePower):
            singularizer = StubSingularizer(FORMS)

            @classmethod
            def _powers(cls):
                cls._power("comments", lambda power: ["first"])
                cls._power("comments", lambda power: ["second"])
                cls._power("visible_posts", lambda power: [Post(1)])
                cls._power("visible_posts?", lambda power: False)

        power = OverridePower()
        self.assertEqual(power.comments(), ["second"])
        self.assertEqual(len(OverridePower.registry), 2)

        self.assertFalse(power.has_visible_posts())
        self.assertTrue(OverridePower.powers["visible_posts"].boolean_only)
        for stale in ("visible_posts", "visible_post_ids", "has_visible_post", "require_visible_post"):
            self.assertFalse(hasattr(power, stale), stale)

    def test_invalid_declarations(self):
        for name, predicate in (
            ("", lambda power: True),
            ("?", lambda power: True),
            ("not a name", lambda power: True),
            ("posts", "not callable"),
            (None, lambda power: True),
        ):
            with self.subTest(name=name):

                class InvalidPower(BasePower):
                    singularizer = NullSingularizer()

                    @classmethod
                    def _powers(cls):
                        cls._power(name, predicate)  # pylint: disable=cell-var-from-loop

                self.assertRaises(PowerDefinitionInvalid, InvalidPower)

    def test_inheritance(self):
        """Test that a power class inherits the powers of its base and may shadow them."""

        class ParentPower(BasePower):
            singularizer = StubSingularizer(FORMS)

            @classmethod
            def _powers(cls):
                cls._power("comments", lambda power: ["parent"])
                cls._power("admin?", lambda power: False)

        class ChildPower(ParentPower):
            @classmethod
            def _powers(cls):
                cls._power("admin?", lambda power: True)
                cls._power("notes", lambda power: ["child"])

        child = ChildPower()
        self.assertEqual(child.comments(), ["parent"])
        self.assertTrue(child.has_admin())
        self.assertFalse(ParentPower().has_admin())
        self.assertEqual(set(ChildPower.powers), {"comments", "admin", "notes"})
        self.assertEqual(set(ParentPower.powers), {"comments", "admin"})
        self.assertTrue(ChildPower.powers["admin"].predicate(child))

    def test_inherited_power_redeclared_as_boolean(self):
        """Test that methods which a redeclaration in a subclass does not derive are no longer inherited."""

        class ParentPower(BasePower):
            singularizer = StubSingularizer(FORMS)

            @classmethod
            def _powers(cls):
                cls._power("comments", lambda power: ["parent"])

        class ChildPower(ParentPower):
            @classmethod
            def _powers(cls):
                cls._power("comments?", lambda power: True)

        class GrandchildPower(ChildPower):
            @classmethod
            def _powers(cls):
                pass

        withdrawn = ("comments", "comment_ids", "has_comment", "require_comment")

        for power_class in (ChildPower, GrandchildPower):
            power = power_class()
            self.assertTrue(power.has_comments())
            power.require_comments()

            for name in withdrawn:
                self.assertFalse(hasattr(power, name), name)
                self.assertFalse(hasattr(power_class, name), name)

        parent = ParentPower()
        self.assertEqual(parent.comments(), ["parent"])
        self.assertEqual(parent.comment_ids.__name__, "comment_ids")
        self.assertTrue(parent.has_comment("parent"))

    def test_several_names_share_a_predicate(self):
        class SharedPower(BasePower):
            singularizer = StubSingularizer(FORMS)

            @classmethod
            def _powers(cls):
                cls._power("comments", "notes", lambda power: ["shared"])

        power = SharedPower()
        self.assertEqual(power.comments(), ["shared"])
        self.assertEqual(power.notes(), ["shared"])
        self.assertTrue(power.has_note("shared"))
        self.assertIs(SharedPower.powers["comments"].predicate, SharedPower.powers["notes"].predicate)

    def test_declaration_without_name(self):
        for arguments in ((), (lambda power: True,)):
            with self.subTest(arguments=arguments):

                class NamelessPower(BasePower):
                    @classmethod
                    def _powers(cls):
                        cls._power(*arguments)  # pylint: disable=cell-var-from-loop

                self.assertRaises(PowerDefinitionInvalid, NamelessPower)

    def test_context_slot_per_class(self):
        class FirstPower(BasePower):
            @classmethod
            def _powers(cls):
                pass

        class SecondPower(BasePower):
            @classmethod
            def _powers(cls):
                pass

        self.assertIsNot(FirstPower.context_slot, SecondPower.context_slot)


if __name__ == "__main__":
    unittest.main()
