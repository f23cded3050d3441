"""Unit tests for snapshot and change event models."""

import pytest
from pydantic import ValidationError

from now_playing.models import ChangeEvent, Snapshot, snapshots_equivalent


class TestSnapshot:
    """Tests for Snapshot equivalence."""

    def test_equal_fields_are_equivalent_regardless_of_identity(self):
        first = Snapshot(artist="Queen", song="Bohemian Rhapsody", artwork_url="http://x/a.jpg")
        second = Snapshot(artist="Queen", song="Bohemian Rhapsody", artwork_url="http://x/a.jpg")

        assert first is not second
        assert snapshots_equivalent(first, second)
        assert first == second

    @pytest.mark.parametrize(
        "other",
        [
            Snapshot(artist="Queen II", song="Bohemian Rhapsody", artwork_url="http://x/a.jpg"),
            Snapshot(artist="Queen", song="Radio Ga Ga", artwork_url="http://x/a.jpg"),
            Snapshot(artist="Queen", song="Bohemian Rhapsody", artwork_url="http://x/b.jpg"),
            Snapshot(artist="Queen", song="Bohemian Rhapsody", artwork_url=None),
        ],
    )
    def test_any_field_difference_breaks_equivalence(self, queen, other):
        assert not snapshots_equivalent(queen, other)

    def test_absent_never_equivalent_to_present(self):
        empty = Snapshot(artist="", song="", artwork_url=None)

        assert not snapshots_equivalent(None, empty)
        assert not snapshots_equivalent(empty, None)
        assert snapshots_equivalent(None, None)

    def test_snapshot_is_immutable(self, queen):
        with pytest.raises(ValidationError):
            queen.song = "Another One Bites the Dust"

    def test_title(self, queen):
        assert queen.title == "Bohemian Rhapsody by Queen"


class TestChangeEvent:
    """Tests for ChangeEvent flag computation."""

    def test_first_song_sets_all_flags(self, queen):
        event = ChangeEvent.between(None, queen)

        assert event.previous is None
        assert event.current == queen
        assert event.artist_changed
        assert event.song_changed
        assert event.artwork_changed

    def test_artwork_only_change(self, queen):
        updated = Snapshot(artist="Queen", song="Bohemian Rhapsody", artwork_url="http://x/b.jpg")

        event = ChangeEvent.between(queen, updated)

        assert not event.artist_changed
        assert not event.song_changed
        assert event.artwork_changed

    def test_transition_to_nothing_playing(self, queen):
        event = ChangeEvent.between(queen, None)

        assert event.current is None
        assert event.artist_changed
        assert event.song_changed
        assert event.artwork_changed

    def test_absence_differs_from_empty_strings(self):
        empty = Snapshot(artist="", song="")

        event = ChangeEvent.between(None, empty)

        assert event.artist_changed
        assert event.song_changed
        # Neither side has artwork
        assert not event.artwork_changed

    def test_same_song_new_artist(self, queen):
        cover = Snapshot(artist="Panic! at the Disco", song="Bohemian Rhapsody", artwork_url="http://x/a.jpg")

        event = ChangeEvent.between(queen, cover)

        assert event.artist_changed
        assert not event.song_changed
        assert not event.artwork_changed
        assert event.any_changed

    def test_identical_snapshots_have_no_flags(self, queen):
        event = ChangeEvent.between(queen, queen.model_copy())

        assert not event.any_changed
