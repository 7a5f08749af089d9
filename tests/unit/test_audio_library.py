"""Tests for AudioLibrary reference allocation and resolution."""

import pytest


def test_allocate_is_unique(library):
    refs = {library.allocate() for _ in range(50)}
    assert len(refs) == 50


def test_allocate_uses_prefix(library):
    ref = library.allocate("extension")
    assert ref.startswith("extension_")
    assert ref.endswith(".wav")


def test_path_stays_inside_root(library):
    assert library.path("memo_x.wav").parent == library.root.resolve()


@pytest.mark.parametrize("ref", ["../escape.wav", "sub/dir.wav", ""])
def test_path_rejects_foreign_refs(library, ref):
    with pytest.raises(ValueError, match="Invalid audio reference"):
        library.path(ref)


def test_write_read_release(library):
    library.write_bytes("memo_a.wav", b"RIFF")
    assert library.exists("memo_a.wav")
    assert library.read_bytes("memo_a.wav") == b"RIFF"
    assert library.release("memo_a.wav") is True
    assert library.exists("memo_a.wav") is False


def test_release_missing_is_noop(library):
    assert library.release("memo_missing.wav") is False


def test_release_invalid_ref(library):
    assert library.release("../etc/passwd") is False
