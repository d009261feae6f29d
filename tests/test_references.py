import pytest

from filmcore.references import CharacterRef, RefKind, cast_lines, normalize_ref, parse_ref, resolve_ref


@pytest.mark.parametrize("raw, expected", [
    ("hero-0", "hero-0"),
    (" HERO-1 ", "hero-1"),
    ("loc-2", "loc-2"),
    ("villain-1", "none"),
    ("hero", "none"),
    ("", "none"),
    (None, "none"),
])
def test_normalize_ref(raw, expected):
    assert normalize_ref(raw) == expected


def test_parse_ref():
    ref = parse_ref("support-3")
    assert ref == CharacterRef(RefKind.SUPPORT, 3)
    assert ref.label == "SUPPORT-3"
    assert str(ref) == "support-3"


def test_resolve_ref(assets):
    assert resolve_ref("hero-1", assets).name == "Kai"
    assert resolve_ref("item-0", assets).name == "Lantern"
    assert resolve_ref("loc-0", assets).name == "Harbor"
    assert resolve_ref("hero-5", assets) is None
    assert resolve_ref("none", assets) is None


def test_cast_lines(assets):
    lines = cast_lines(assets)
    assert lines["heroes"] == "HERO-0 (Lin); HERO-1 (Kai)"
    assert lines["supports"] == "SUPPORT-0 (Mentor)"
    assert lines["items"] == "ITEM-0 (Lantern)"
    assert lines["locations"] == "LOC-0 (Harbor)"
