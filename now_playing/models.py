"""Pydantic models for now playing snapshots and change events."""

from pydantic import BaseModel, ConfigDict, Field


class Snapshot(BaseModel):
    """One observed "now playing" state.

    Snapshots compare by value: two snapshots with the same artist, song and
    artwork URL are equal regardless of identity. "Nothing playing" is
    represented by the absence of a snapshot (``None``), never by a snapshot
    with empty fields.
    """

    model_config = ConfigDict(frozen=True)

    artist: str = Field(..., description="Artist of the current song")
    song: str = Field(..., description="Title of the current song")
    artwork_url: str | None = Field(default=None, description="URL of the album artwork, if any")

    @property
    def title(self) -> str:
        """Display title, e.g. "Bohemian Rhapsody by Queen"."""
        return f"{self.song} by {self.artist}"


def snapshots_equivalent(first: Snapshot | None, second: Snapshot | None) -> bool:
    """Check whether two possibly absent snapshots describe the same state.

    Args:
        first: Snapshot or None when nothing is playing
        second: Snapshot or None when nothing is playing

    Returns:
        True if both are absent, or both are present with equal fields
    """
    if first is None or second is None:
        return first is None and second is None
    return first.artist == second.artist and first.song == second.song and first.artwork_url == second.artwork_url


# Distinct from every string, including "".
_ABSENT = object()


def _field(snapshot: Snapshot | None, name: str) -> object:
    if snapshot is None:
        return _ABSENT
    return getattr(snapshot, name)


class ChangeEvent(BaseModel):
    """Difference between two consecutive snapshots."""

    model_config = ConfigDict(frozen=True)

    previous: Snapshot | None
    current: Snapshot | None
    artist_changed: bool
    song_changed: bool
    artwork_changed: bool

    @classmethod
    def between(cls, previous: Snapshot | None, current: Snapshot | None) -> "ChangeEvent":
        """Build a change event with per-field flags.

        An absent snapshot's fields differ from any present value. A missing
        artwork URL on a present snapshot matches an absent snapshot, since
        neither has artwork.

        Args:
            previous: Last published snapshot
            current: Newly observed snapshot

        Returns:
            ChangeEvent with flags computed field by field
        """
        previous_artwork = previous.artwork_url if previous is not None else None
        current_artwork = current.artwork_url if current is not None else None
        return cls(
            previous=previous,
            current=current,
            artist_changed=_field(previous, "artist") != _field(current, "artist"),
            song_changed=_field(previous, "song") != _field(current, "song"),
            artwork_changed=previous_artwork != current_artwork,
        )

    @property
    def any_changed(self) -> bool:
        """True if at least one field changed."""
        return self.artist_changed or self.song_changed or self.artwork_changed
