"""
Deferred Binding Tests

🧪 Session scoped relation operations:
Ledger collapse rules, replay order, before/after policy, housekeeping
and the record level flow around save.
"""

from datetime import datetime, timedelta

from starrecord import BindingOperation, DeferredBindingLedger

from tests.records import Comment, Post, Tag

class FakeTag:
    def __init__(self, key):
        self.key = key

    def get_key(self):
        return self.key

class FakeOwner:
    def __init__(self):
        self.applied = []

    def apply_deferred_binding(self, entry):
        self.applied.append((entry.operation, entry.master_field, entry.slave_id))

class TestLedger:

    def test_entries_keep_insertion_order(self):
        ledger = DeferredBindingLedger()
        owner = FakeOwner()

        ledger.bind("s1", owner, "tags", FakeTag(1))
        ledger.bind("s1", owner, "tags", FakeTag(2))
        ledger.insert("s1", owner, "comments", {"body": "hi"})

        entries = ledger.get_deferred("s1")
        assert [entry.operation for entry in entries] == [
            BindingOperation.BIND, BindingOperation.BIND, BindingOperation.INSERT
        ]
        assert [entry.slave_id for entry in entries] == [1, 2, None]
        assert len(ledger) == 3

    def test_bind_then_unbind_collapses(self):
        ledger = DeferredBindingLedger()
        owner = FakeOwner()
        tag = FakeTag(1)

        assert ledger.bind("s1", owner, "tags", tag) is True
        assert ledger.unbind("s1", owner, "tags", tag) is False

        assert ledger.get_deferred("s1") == []
        assert not ledger.has_deferred("s1")

    def test_repeated_bind_is_ignored(self):
        ledger = DeferredBindingLedger()
        owner = FakeOwner()

        ledger.bind("s1", owner, "tags", FakeTag(1))
        assert ledger.bind("s1", owner, "tags", FakeTag(1)) is False

        assert len(ledger.get_deferred("s1")) == 1

    def test_inserts_never_collapse(self):
        ledger = DeferredBindingLedger()
        owner = FakeOwner()

        ledger.insert("s1", owner, "comments", {"body": "a"})
        ledger.insert("s1", owner, "comments", {"body": "a"})

        assert len(ledger.get_deferred("s1")) == 2

    def test_filters_by_owner_type_and_field(self):
        ledger = DeferredBindingLedger()
        owner = FakeOwner()

        ledger.bind("s1", owner, "tags", FakeTag(1))
        ledger.bind("s1", FakeTag(9), "tags", FakeTag(2))

        assert len(ledger.get_deferred("s1", FakeOwner)) == 1
        assert len(ledger.get_deferred("s1", FakeOwner, "categories")) == 0

    def test_commit_splits_before_and_after_kinds(self):
        ledger = DeferredBindingLedger(before_kinds=["belongs_to"])
        owner = FakeOwner()
        ledger.bind("s1", owner, "author", FakeTag(5), relation_kind="belongs_to")
        ledger.bind("s1", owner, "tags", FakeTag(1), relation_kind="belongs_to_many")

        assert ledger.commit_before(owner, "s1") == 1
        assert owner.applied == [(BindingOperation.BIND, "author", 5)]

        assert ledger.commit_after(owner, "s1") == 1
        assert owner.applied[-1] == (BindingOperation.BIND, "tags", 1)
        assert len(ledger) == 0

    def test_commit_without_session_key_does_nothing(self):
        ledger = DeferredBindingLedger()
        owner = FakeOwner()
        ledger.bind("s1", owner, "tags", FakeTag(1))

        assert ledger.commit_after(owner, None) == 0
        assert ledger.commit_after(owner, "other") == 0
        assert len(ledger) == 1

    def test_cancel_and_clean_up(self):
        ledger = DeferredBindingLedger(ttl_hours=5)
        owner = FakeOwner()
        ledger.bind("s1", owner, "tags", FakeTag(1))
        ledger.bind("s2", owner, "tags", FakeTag(2))
        ledger.get_deferred("s2")[0].created_at = datetime.now() - timedelta(hours=6)

        assert ledger.clean_up() == 1
        assert not ledger.has_deferred("s2")

        assert ledger.cancel_deferred("s1") == 1
        assert len(ledger) == 0
        assert owner.applied == []

    def test_entry_serialization(self):
        ledger = DeferredBindingLedger()
        ledger.bind("s1", FakeOwner(), "tags", FakeTag(3), relation_kind="belongs_to_many", pivot_data={"w": 1})

        data = ledger.get_deferred("s1")[0].to_dict()

        assert data["operation"] == "bind"
        assert data["master_field"] == "tags"
        assert data["slave_id"] == 3
        assert data["pivot_data"] == {"w": 1}
        assert data["master_type"].endswith("FakeOwner")

class TestDeferredRecordFlow:

    def test_bind_is_applied_when_owner_is_saved(self, repository, ledger):
        post = Post(title="Draft")
        post.session_key = "sess1"
        tag = Tag.create({"name": "python"})

        post.bind("tags", tag)
        assert len(ledger.get_deferred("sess1")) == 1
        assert repository.rows("post_tag") == []

        assert post.save()

        assert ledger.get_deferred("sess1") == []
        assert repository.rows("post_tag") == [{"post_id": post.get_key(), "tag_id": tag.get_key()}]
        assert [item.get("name") for item in post.load_relation("tags")] == ["python"]

    def test_cancelled_save_keeps_entries(self, repository, ledger):
        post = Post(title="Draft")
        tag = Tag.create({"name": "kept"})
        post.bind("tags", tag, session_key="sess2")
        post.bind_event("model.beforeSave", lambda: False)

        assert post.save(session_key="sess2") is False

        assert len(ledger.get_deferred("sess2")) == 1
        assert repository.rows("post_tag") == []

    def test_deferred_create_related(self, repository, ledger):
        post = Post(title="Parent")
        comment = post.create_related("comments", {"body": "first"}, session_key="sess3")

        assert not comment.exists
        assert repository.rows("comments") == []

        assert post.save(session_key="sess3")

        assert comment.exists
        assert repository.rows("comments")[0]["post_id"] == post.get_key()
        assert not post.has_deferred("sess3")

    def test_bind_then_unbind_writes_nothing(self, repository, ledger):
        post = Post(title="Undecided")
        post.session_key = "sess4"
        tag = Tag.create({"name": "maybe"})

        post.bind("tags", tag)
        post.unbind("tags", tag)
        assert post.save()

        assert repository.rows("post_tag") == []

    def test_entries_are_filtered_by_owner_type(self, repository, ledger):
        post = Post(title="Shared")
        tag = Tag.create({"name": "shared"})
        post.bind("tags", tag, session_key="shared")
        comment = Comment(body="other owner")

        assert comment.save(session_key="shared")

        assert len(ledger.get_deferred("shared")) == 1
        assert post.get_deferred_bindings("shared")[0].master_field == "tags"

    def test_cancel_deferred_on_record(self, ledger):
        post = Post(title="Abandoned")
        post.session_key = "sess5"
        post.bind("tags", Tag.create({"name": "gone"}))

        assert post.cancel_deferred() == 1
        assert len(ledger) == 0

    def test_bind_on_new_owner_waits_for_save(self, repository, ledger):
        post = Post(title="unsaved")
        tag = Tag.create({"name": "later"})

        post.bind("tags", tag)
        assert repository.rows("post_tag") == []
        assert len(ledger) == 0

        assert post.save()

        assert repository.rows("post_tag") == [{"post_id": post.get_key(), "tag_id": tag.get_key()}]

    def test_bind_then_unbind_on_new_owner(self, repository):
        post = Post(title="unsaved")
        tag = Tag.create({"name": "dropped"})

        post.bind("tags", tag)
        post.unbind("tags", tag)
        assert post.save()

        assert repository.rows("post_tag") == []

    def test_create_related_on_new_owner_waits_for_save(self, repository):
        post = Post(title="parent")
        comment = post.create_related("comments", {"body": "first"})

        assert not comment.exists
        assert repository.rows("comments") == []

        assert post.save()

        assert comment.exists
        assert repository.rows("comments")[0]["post_id"] == post.get_key()

    def test_refused_save_keeps_waiting(self, repository):
        post = Post(title="refused")
        post.bind("tags", Tag.create({"name": "pending"}))
        post.bind_event_once("model.beforeSave", lambda: False)

        assert post.save() is False
        assert repository.rows("post_tag") == []

        assert post.save()
        assert repository.rows("post_tag") == [{"post_id": post.get_key(), "tag_id": 1}]

    def test_immediate_bind_without_session(self, repository):
        post = Post.create({"title": "Now"})
        tag = Tag.create({"name": "instant"})

        post.bind("tags", tag, pivot_data={"weight": 2})

        assert repository.rows("post_tag") == [{"post_id": 1, "tag_id": 1, "weight": 2}]
