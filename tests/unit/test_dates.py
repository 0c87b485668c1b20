"""
Date Coercion Tests

🧪 as_date_time and date attributes:
Every accepted date input shape, the storage format round trip and
automatic timestamps.
"""

from datetime import date, datetime, timezone

import pytest

from starrecord import ApplicationConfig, Environment, MemoryRepository, Record, as_date_time, reset_service_container
from starrecord.records.casting import as_timestamp, from_date_time

from tests.records import Article, Post

class TestAsDateTime:

    def test_datetime_is_returned_unchanged(self):
        moment = datetime(2024, 5, 6, 7, 8, 9)
        assert as_date_time(moment) is moment

    def test_date_is_promoted_to_midnight(self):
        assert as_date_time(date(2024, 5, 6)) == datetime(2024, 5, 6, 0, 0, 0)

    def test_standard_date_string_is_midnight(self):
        assert as_date_time("2024-01-05") == datetime(2024, 1, 5, 0, 0, 0)

    def test_numeric_values_are_unix_timestamps(self):
        expected = datetime(2023, 11, 14, 22, 13, 20)
        assert as_date_time(1700000000) == expected
        assert as_date_time("1700000000") == expected

    def test_foreign_date_objects_keep_timezone(self):
        class Moment:
            tzinfo = timezone.utc

            def isoformat(self):
                return "2024-02-03T04:05:06.000007+00:00"

        result = as_date_time(Moment())

        assert result == datetime(2024, 2, 3, 4, 5, 6, 7, tzinfo=timezone.utc)
        assert result.microsecond == 7

    def test_configured_format_is_used(self):
        assert as_date_time("05/01/2024 10:00", "%d/%m/%Y %H:%M") == datetime(2024, 1, 5, 10, 0)

    def test_missing_fraction_is_tolerated(self):
        """Values stored before sub-second precision still parse"""
        fmt = "%Y-%m-%d %H:%M:%S.%f"
        assert as_date_time("2024-01-05 10:11:12", fmt) == datetime(2024, 1, 5, 10, 11, 12)
        assert as_date_time("2024-01-05 10:11:12.250000", fmt) == datetime(2024, 1, 5, 10, 11, 12, 250000)

    def test_iso_text_is_accepted_as_fallback(self):
        assert as_date_time("2024-01-05T10:11:12") == datetime(2024, 1, 5, 10, 11, 12)

    def test_unparseable_text_raises(self):
        with pytest.raises(ValueError):
            as_date_time("next tuesday")

    def test_unsupported_type_raises(self):
        with pytest.raises(TypeError):
            as_date_time(["2024"])

    def test_storage_helpers(self):
        assert from_date_time(datetime(2024, 1, 5, 1, 2, 3)) == "2024-01-05 01:02:03"
        assert from_date_time(None) is None
        assert as_timestamp("2023-11-14 22:13:20") == 1700000000

class TestDateAttributes:

    def test_stored_date_reads_as_midnight(self, repository):
        repository.create_table("posts", [{"id": 1, "title": "t", "created_at": "2024-01-05"}])

        post = Post.find(1)

        assert post.get_attribute_value("created_at") == datetime(2024, 1, 5, 0, 0, 0)

    def test_assigned_dates_are_stored_in_format(self):
        article = Article()
        article.set("published_at", date(2024, 2, 29))

        assert article.attributes["published_at"] == "2024-02-29 00:00:00"
        assert article.get("published_at") == datetime(2024, 2, 29)

    def test_empty_dates_stay_empty(self):
        article = Article(published_at=None)
        assert article.attributes["published_at"] is None
        assert article.get("published_at") is None

    def test_per_type_date_format(self):
        class Event(Record):
            table = "events"
            dates = ["starts_at"]
            date_format = "%d.%m.%Y %H:%M"

        event = Event(starts_at=datetime(2024, 7, 1, 18, 30))
        assert event.attributes["starts_at"] == "01.07.2024 18:30"
        assert event.get("starts_at") == datetime(2024, 7, 1, 18, 30)

    def test_configured_date_format(self):
        config = ApplicationConfig.for_environment(Environment.TESTING)
        config.persistence.date_format = "%Y-%m-%d %H:%M:%S.%f"
        reset_service_container(config).configure_repository(MemoryRepository())

        article = Article.new_from_storage({"id": 1, "published_at": "2024-01-05 10:11:12"})

        assert article.get("published_at") == datetime(2024, 1, 5, 10, 11, 12)

class TestTimestamps:

    def test_insert_sets_both_timestamps(self, repository):
        post = Post.create({"title": "stamped"})

        row = repository.rows("posts")[0]
        assert row["created_at"] == row["updated_at"]
        assert isinstance(post.get("created_at"), datetime)

    def test_update_refreshes_updated_at_only(self, repository):
        repository.create_table("posts", [{
            "id": 1, "title": "old", "created_at": "2020-01-01 00:00:00", "updated_at": "2020-01-01 00:00:00"
        }])
        post = Post.find(1)

        post.set("title", "new")
        assert post.save()

        row = repository.rows("posts")[0]
        assert row["created_at"] == "2020-01-01 00:00:00"
        assert row["updated_at"] != "2020-01-01 00:00:00"

    def test_types_without_timestamps(self, repository):
        class Setting(Record):
            table = "settings"
            timestamps = False

        Setting.create({"name": "theme"})

        assert repository.rows("settings") == [{"name": "theme", "id": 1}]
