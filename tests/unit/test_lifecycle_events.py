"""
Lifecycle Event Tests

🧪 Ordered, cancellable hooks:
Convention methods, type level handlers, instance events, halting
semantics, hook outcomes and boot wiring.
"""

import pytest

from starrecord import HookOutcome, OutcomeKind, Phase, Record
from starrecord.events import EventEmitter, normalize_result

from tests.records import Post

class Guarded(Record):
    table = "guarded"
    timestamps = False

    def before_save(self):
        if self.get("title") == "x":
            return False

class Journaled(Record):
    table = "journaled"
    timestamps = False
    journal = []

    @classmethod
    def boot(cls):
        cls.saving(lambda record: cls.journal.append("saving"))

    def before_create(self):
        self.journal.append("before_create")

    def after_create(self):
        self.journal.append("after_create")

    def after_save(self):
        self.journal.append("after_save")

    def after_fetch(self):
        self.journal.append("after_fetch")

class Annotated(Record):
    table = "annotated"
    timestamps = False

    def after_save(self):
        if self.get("note") is None:
            self.set("note", "set in hook")

class TestHookOutcome:

    def test_normalization(self):
        assert normalize_result(None) is None
        assert normalize_result(False).kind is OutcomeKind.CANCEL
        assert normalize_result(False).value is False
        assert normalize_result(0).kind is OutcomeKind.OVERRIDE
        assert normalize_result("value") == HookOutcome.override("value")
        outcome = HookOutcome.proceed()
        assert normalize_result(outcome) is outcome
        assert not outcome.halts

class TestCancellation:

    def test_before_save_returning_false_leaves_storage_unchanged(self, repository):
        record = Guarded.create({"title": "ok"})
        record.set("title", "x")

        assert record.save() is False
        assert repository.rows("guarded") == [{"title": "ok", "id": 1}]
        assert record.is_dirty("title")

    def test_cancelled_insert_writes_nothing(self, repository):
        record = Guarded(title="x")

        assert record.save() is False
        assert not record.exists
        assert repository.rows("guarded") == []

    def test_instance_handler_can_cancel(self, repository):
        post = Post(title="draft")
        post.bind_event("model.beforeSave", lambda: False)

        assert post.save() is False
        assert repository.rows("posts") == []

    def test_save_internal_event_can_refuse(self, repository):
        post = Post(title="draft")
        post.bind_event("model.saveInternal", lambda attributes, options: False)

        assert post.save() is False
        assert repository.rows("posts") == []

    def test_type_handler_can_cancel_delete(self, repository):
        Post.deleting(lambda post: False)
        post = Post.create({"title": "keep"})

        assert post.delete() is False
        assert post.exists
        assert len(repository.rows("posts")) == 1

class TestDispatchOrder:

    def test_phases_fire_in_protocol_order(self, repository):
        Journaled.journal.clear()

        record = Journaled.create({"title": "one"})
        assert Journaled.journal == ["saving", "before_create", "after_create", "after_save"]

        Journaled.journal.clear()
        Journaled.find(record.get_key())
        assert Journaled.journal == ["after_fetch"]

    def test_priority_then_registration_order(self):
        calls = []
        Post.saved(lambda post: calls.append("late"))
        Post.saved(lambda post: calls.append("first"), priority=10)
        Post.saved(lambda post: calls.append("second"))

        Post.create({"title": "ordered"})

        assert calls == ["first", "late", "second"]

    def test_before_phases_halt_at_first_outcome(self):
        calls = []
        Post.creating(lambda post: calls.append("one") or HookOutcome.override("stop"))
        Post.creating(lambda post: calls.append("two"))

        post = Post(title="t")
        outcome = post.fire_model_event(Phase.CREATING)

        assert outcome.is_override
        assert calls == ["one"]

    def test_after_phases_run_every_handler(self):
        calls = []
        Post.created(lambda post: calls.append("one") or "ignored")
        Post.created(lambda post: calls.append("two"))

        post = Post(title="t")
        assert post.fire_model_event(Phase.CREATED) is None
        assert calls == ["one", "two"]

class TestBooting:

    def test_boot_runs_once_per_type(self, container):
        Journaled.journal.clear()
        Journaled()
        Journaled()

        saving_handlers = container.event_registry.listeners(Journaled, Phase.SAVING)
        assert len(saving_handlers) == 2

    def test_flush_rewires_without_duplicates(self, container, repository):
        Journaled()
        Journaled.flush_event_listeners()
        assert not container.event_registry.is_booted(Journaled)

        Journaled.journal.clear()
        Journaled.create({"title": "again"})

        assert Journaled.journal == ["saving", "before_create", "after_create", "after_save"]

    def test_rebooting_keeps_external_handlers(self, container):
        calls = []
        Post.saving(lambda post: calls.append("external"))
        Post()
        # Flushing another type clears every boot flag but keeps Post's handlers
        Journaled.flush_event_listeners()
        Post()

        Post(title="t").fire_model_event(Phase.SAVING)

        assert calls == ["external"]
        assert len(container.event_registry.listeners(Post, Phase.SAVING)) == 2

    def test_booted_phase_runs_after_boot(self):
        booted = []

        class Announced(Record):
            table = "announced"

            def after_boot(self):
                booted.append(type(self).__name__)

        Announced()
        Announced()

        assert booted == ["Announced"]

class TestInstanceEvents:

    def test_once_handlers_are_removed(self):
        emitter = EventEmitter()
        calls = []
        emitter.bind_event_once("ping", lambda: calls.append(1))

        emitter.fire_event("ping")
        emitter.fire_event("ping")

        assert calls == [1]
        assert not emitter.has_event_handlers("ping")

    def test_non_halting_collects_outcomes(self):
        emitter = EventEmitter()
        emitter.bind_event("collect", lambda: "a")
        emitter.bind_event("collect", lambda: None)
        emitter.bind_event("collect", lambda: False)

        outcomes = emitter.fire_event("collect")

        assert [outcome.kind for outcome in outcomes] == [OutcomeKind.OVERRIDE, OutcomeKind.CANCEL]

    def test_unbind(self):
        emitter = EventEmitter()
        emitter.bind_event("a", lambda: 1).bind_event("b", lambda: 2)

        emitter.unbind_event("a")
        assert not emitter.has_event_handlers("a")
        assert emitter.has_event_handlers("b")

        emitter.unbind_event()
        assert not emitter.has_event_handlers("b")

    def test_handlers_must_be_callable(self):
        with pytest.raises(TypeError):
            EventEmitter().bind_event("a", "not callable")

class TestChangesInAfterHooks:

    def test_after_save_changes_stay_dirty(self, repository):
        record = Annotated.create({"title": "x"})

        assert repository.rows("annotated") == [{"id": 1, "title": "x"}]
        assert record.is_dirty("note")
        assert record.get_original("note") is None

        assert record.save()

        assert repository.rows("annotated") == [{"id": 1, "title": "x", "note": "set in hook"}]
        assert record.is_clean()
