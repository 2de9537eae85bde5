"""Tests for utils/actor_context.py."""

from utils.actor_context import (
    SYSTEM_ACTOR,
    actor_context,
    clear_current_actor,
    get_current_actor,
    set_current_actor,
)


class TestActorContext:
    """Binding and clearing the acting admin."""

    def test_defaults_to_system(self):
        assert get_current_actor() == SYSTEM_ACTOR

    def test_set_and_clear(self):
        set_current_actor("ops@store.example")
        assert get_current_actor() == "ops@store.example"

        clear_current_actor()
        assert get_current_actor() == SYSTEM_ACTOR

    def test_context_manager_restores_previous(self):
        set_current_actor("outer@store.example")

        with actor_context("inner@store.example"):
            assert get_current_actor() == "inner@store.example"

        assert get_current_actor() == "outer@store.example"

    def test_restores_on_exception(self):
        try:
            with actor_context("inner@store.example"):
                raise RuntimeError("boom")
        except RuntimeError:
            pass

        assert get_current_actor() == SYSTEM_ACTOR

