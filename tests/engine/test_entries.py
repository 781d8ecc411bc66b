from __future__ import annotations

from zonefetch.engine import RemoteEntry, dedupe_by_name, filter_canonical, order_by_size
from zonefetch.engine.entries import split_extension


def names(entries: list[RemoteEntry]) -> list[str]:
    return [entry.name for entry in entries]


def test_compressed_variant_shadows_plain_twin() -> None:
    listing = [
        RemoteEntry("A.gz", 100),
        RemoteEntry("B.txt", 50),
        RemoteEntry("A", 100),
        RemoteEntry("com.zone", 10),
        RemoteEntry("com.zone.gz", 5),
    ]
    assert names(filter_canonical(listing)) == ["A.gz", "B.txt", "com.zone.gz"]


def test_filter_is_identity_without_compressed_twins() -> None:
    listing = [
        RemoteEntry("."),
        RemoteEntry(".."),
        RemoteEntry("net.zone", 3),
        RemoteEntry("org.zone.gz", 2),
        RemoteEntry("a.txt", 1),
        RemoteEntry("a.csv", 1),
    ]
    assert names(filter_canonical(listing)) == ["net.zone", "org.zone.gz", "a.txt", "a.csv"]


def test_only_exact_suffix_match_shadows() -> None:
    listing = [RemoteEntry("A.txt"), RemoteEntry("A.gz")]
    # "A.gz" shadows "A", not "A.txt".
    assert names(filter_canonical(listing)) == ["A.txt", "A.gz"]


def test_directories_are_dropped() -> None:
    listing = [RemoteEntry("archive", is_directory=True), RemoteEntry("x.zone.gz")]
    assert names(filter_canonical(listing)) == ["x.zone.gz"]


def test_custom_compressed_suffix() -> None:
    listing = [RemoteEntry("x.zone"), RemoteEntry("x.zone.bz2"), RemoteEntry("y.zone.gz")]
    assert names(filter_canonical(listing, ".bz2")) == ["x.zone.bz2", "y.zone.gz"]


def test_order_by_size_is_stable_largest_first() -> None:
    listing = [RemoteEntry("small", 1), RemoteEntry("big", 10), RemoteEntry("tie", 1)]
    assert names(order_by_size(listing)) == ["big", "small", "tie"]


def test_dedupe_by_name_keeps_first_occurrence() -> None:
    listing = [RemoteEntry("a", 1), RemoteEntry("b", 2), RemoteEntry("a", 3)]
    unique = dedupe_by_name(listing)
    assert names(unique) == ["a", "b"]
    assert unique[0].size == 1


def test_split_extension_and_has_suffix() -> None:
    assert split_extension("com.zone.gz") == ("com.zone", ".gz")
    assert RemoteEntry("com.zone.gz").has_suffix(".gz")
    assert not RemoteEntry("com.zone").has_suffix(".gz")
