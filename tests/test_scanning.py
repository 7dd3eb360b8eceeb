import pytest

from dance_library.models import MediaItem
from dance_library.scanning.scanner import VaultScanner, merge_items, root_prefix


def test_path_inference_without_sidecar(vault, make_file):
    make_file("Salsa/On1/Beginner/cross-body-lead.mp4")

    items = VaultScanner(vault).scan()

    assert len(items) == 1
    item = items[0]
    assert item.path == "Salsa/On1/Beginner/cross-body-lead.mp4"
    assert item.dance == "Salsa"
    assert item.style == "On1"
    assert item.class_level == "Beginner"
    assert item.name == "cross-body-lead"
    assert item.basename == "cross-body-lead"
    assert item.extension == "mp4"
    assert item.play_count == 0
    assert item.description is None


def test_sidecar_overrides_only_what_it_sets(vault, make_file):
    make_file("Salsa/On1/Beginner/cross-body-lead.mp4")
    make_file("Salsa/On1/Beginner/cross-body-lead.md", "---\ndance: Bachata\nstyle:   \n---\n")

    item = VaultScanner(vault).scan()[0]

    assert item.dance == "Bachata"
    assert item.style == "On1"
    assert item.class_level == "Beginner"


def test_shallow_paths_leave_facets_unset(vault, make_file):
    make_file("top.mp4")
    make_file("Salsa/one-level.webm")

    items = {i.path: i for i in VaultScanner(vault).scan()}

    assert items["top.mp4"].dance is None
    assert items["Salsa/one-level.webm"].dance == "Salsa"
    assert items["Salsa/one-level.webm"].style is None


def test_root_folder_limits_and_rebases_inference(vault, make_file):
    make_file("Dance/Salsa/On2/step.mp4")
    make_file("Other/Salsa/On2/elsewhere.mp4")
    make_file("Dancer/not-inside.mp4")

    items = VaultScanner(vault).scan("Dance/")

    assert [i.path for i in items] == ["Dance/Salsa/On2/step.mp4"]
    assert items[0].dance == "Salsa"
    assert items[0].style == "On2"
    assert items[0].class_level is None


def test_extension_allow_list_is_case_insensitive(vault, make_file):
    make_file("a.MP4")
    make_file("b.mov")
    make_file("c.avi")
    make_file("d.txt", "nope")
    make_file("e.png")

    paths = [i.path for i in VaultScanner(vault).scan()]
    assert paths == ["a.MP4", "b.mov"]


def test_thumbnail_and_sidecar_lookup(vault, make_file):
    make_file("Salsa/step.mp4")
    make_file("Salsa/STEP.JPG")
    make_file("Salsa/other.png")
    make_file("Salsa/step.md", (
        "---\n"
        "stepName: Sombrero\n"
        "description: Hat move\n"
        "danceStyle: Cuban\n"
        "classLevel: Advanced\n"
        "playCount: 7.9\n"
        "lastPlayedAt: 1700000000000\n"
        "---\n\nbody\n"
    ))

    item = VaultScanner(vault).scan()[0]

    assert item.thumbnail_path == "Salsa/STEP.JPG"
    assert item.name == "Sombrero"
    assert item.description == "Hat move"
    assert item.style == "Cuban"
    assert item.class_level == "Advanced"
    assert item.play_count == 7
    assert item.last_played_at == 1700000000000


def test_sidecar_name_must_match_exactly(vault, make_file):
    make_file("step.mp4")
    make_file("Step.md", "---\nstepName: Wrong\n---\n")

    assert VaultScanner(vault).scan()[0].name == "step"


def test_play_count_is_clamped_and_validated(vault, make_file):
    make_file("neg.mp4")
    make_file("neg.md", "---\nplayCount: -3\n---\n")
    make_file("text.mp4")
    make_file("text.md", "---\nplayCount: many\nlastPlayedAt: yesterday\n---\n")

    items = {i.path: i for i in VaultScanner(vault).scan()}

    assert items["neg.mp4"].play_count == 0
    assert items["text.mp4"].play_count == 0
    assert items["text.mp4"].last_played_at is None


def test_unreadable_sidecar_does_not_fail_scan(vault, make_file):
    make_file("bad.mp4")
    make_file("bad.md", b"\xff\xfe\x00binary")
    make_file("good.mp4")
    make_file("good.md", "---\nstepName: Good\n---\n")

    items = VaultScanner(vault).scan()

    assert [i.path for i in items] == ["bad.mp4", "good.mp4"]
    assert items[0].name == "bad"
    assert items[1].name == "Good"


def test_video_removed_mid_scan_is_withdrawn(vault, make_file, monkeypatch):
    make_file("a.mp4")
    make_file("b.mp4")
    scanner = VaultScanner(vault)

    original = vault.list_children

    def racing_list_children(folder):
        # b.mp4 disappears after it was listed as a candidate
        (vault.root / "b.mp4").unlink(missing_ok=True)
        return original(folder)

    monkeypatch.setattr(vault, "list_children", racing_list_children)
    assert [i.path for i in scanner.scan()] == ["a.mp4"]


def test_scan_is_sorted_and_deterministic(vault, make_file):
    for rel in ["z/b.mp4", "a/z.mp4", "m.mp4", "a/a.mp4", "A/x.mp4"]:
        make_file(rel)

    scanner = VaultScanner(vault)
    first = [i.path for i in scanner.scan()]

    assert first == sorted(first)
    assert first == [i.path for i in scanner.scan()]
    assert first == [i.path for i in scanner.scan(max_workers=3)]


def test_scan_path(vault, make_file):
    make_file("Dance/Salsa/step.mp4")
    make_file("Dance/notes.md", "hi")
    scanner = VaultScanner(vault)

    assert scanner.scan_path("Dance/Salsa/step.mp4", "Dance").dance == "Salsa"
    assert scanner.scan_path("Dance/notes.md") is None
    assert scanner.scan_path("Dance/missing.mp4") is None
    assert scanner.scan_path("Dance/Salsa/step.mp4", "Other") is None


def test_merge_items_rekeys_and_keeps_order():
    def item(path):
        return MediaItem(path=path, basename=path, extension="mp4", name=path)

    merged = merge_items([item("a"), item("c"), item("old")], [item("b"), item("c")], ["old"])
    assert [i.path for i in merged] == ["a", "b", "c"]


def test_root_prefix():
    assert root_prefix(None) == ""
    assert root_prefix("  ") == ""
    assert root_prefix("/Dance/") == "Dance/"


@pytest.mark.parametrize("workers", [1, 3])
def test_one_failing_item_does_not_fail_scan(vault, make_file, monkeypatch, workers):
    make_file("Salsa/a.mp4")
    make_file("Bachata/b.mp4")

    original = vault.list_children

    def flaky_list_children(folder):
        if folder == "Salsa":
            raise PermissionError("stat failed")
        return original(folder)

    monkeypatch.setattr(vault, "list_children", flaky_list_children)

    assert [i.path for i in VaultScanner(vault).scan(max_workers=workers)] == ["Bachata/b.mp4"]
