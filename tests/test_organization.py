import pytest

from dance_library.exceptions import OrganizeError, StepNotFoundError, UnsupportedMediaError
from dance_library.metadata.sidecar import parse_frontmatter
from dance_library.models import MediaItem, MetadataPatch, SidecarRecord
from dance_library.organization.organizer import Organizer, has_intake_extension
from dance_library.settings import LibrarySettings

SALSA_SIDECAR = "---\nstepName: Step\ndance: Salsa\nstyle: On1\nclass: Beginner\n---\n"


@pytest.fixture
def organizer(vault, probe):
    return Organizer(vault, LibrarySettings(), probe)


def read(vault, rel):
    return (vault.root / rel).read_text(encoding="utf-8")


def test_collisions_get_numbered(vault, make_file, organizer):
    make_file("inbox/a.mp4", b"first")
    make_file("inbox/a.md", SALSA_SIDECAR)
    make_file("other/b.mp4", b"second")
    make_file("other/b.md", SALSA_SIDECAR)

    first = organizer.organize("inbox/a.mp4")
    second = organizer.organize("other/b.mp4")

    assert first == "Dance/salsa/on1/beginner/step.mp4"
    assert second == "Dance/salsa/on1/beginner/step 2.mp4"
    assert (vault.root / first).read_bytes() == b"first"
    assert (vault.root / second).read_bytes() == b"second"
    # Copy, not move
    assert (vault.root / "inbox/a.mp4").exists()
    assert (vault.root / "other/b.mp4").exists()


def test_fresh_sidecar_written_at_destination(vault, make_file, organizer, probe):
    make_file("inbox/a.mp4")
    make_file("inbox/a.md", SALSA_SIDECAR)

    dest = organizer.organize("inbox/a.mp4")

    assert read(vault, "Dance/salsa/on1/beginner/step.md") == (
        "---\n"
        "stepName: Step\n"
        "description:\n"
        "class: Beginner\n"
        "classLevel: Beginner\n"
        "dance: Salsa\n"
        "style: On1\n"
        "danceStyle: On1\n"
        "playCount: 0\n"
        "lastPlayedAt:\n"
        "thumbnail:\n"
        "duration: 12.5\n"
        "---\n"
        "\n"
        "#DanceLibrary #salsa\n"
    )
    assert probe.calls == [vault.local_path(dest)]


def test_thumbnail_follows_the_video(vault, make_file, organizer):
    make_file("inbox/move.mp4")
    make_file("inbox/Move.JPG", b"jpeg")

    dest = organizer.organize("inbox/move.mp4")

    # No sidecar and no facets: lands directly under the library root
    assert dest == "Dance/move.mp4"
    assert (vault.root / "Dance/move.JPG").read_bytes() == b"jpeg"
    fields, body = parse_frontmatter(read(vault, "Dance/move.md"))
    assert fields["stepName"] == "move"
    assert fields["thumbnail"] == "Dance/move.JPG"
    assert body == "#DanceLibrary\n"


def test_existing_destination_sidecar_is_kept(vault, make_file, organizer, probe):
    make_file("inbox/move.mp4")
    make_file("Dance/move.md", "---\nstepName: Keep me\n---\n")

    dest = organizer.organize("inbox/move.mp4")

    assert dest == "Dance/move.mp4"
    assert read(vault, "Dance/move.md") == "---\nstepName: Keep me\n---\n"
    assert probe.calls == []


def test_templates_come_from_settings(vault, make_file, probe):
    settings = LibrarySettings(library_root="Lib", organize_template="{class}/{dance}",
                               filename_template="{dance}-{stepName}")
    organizer = Organizer(vault, settings, probe)
    make_file("inbox/a.mp4")
    make_file("inbox/a.md", SALSA_SIDECAR)

    assert organizer.organize("inbox/a.mp4") == "Lib/beginner/salsa/salsa-step.mp4"


def test_blank_filename_template_falls_back_to_basename(vault, make_file, probe):
    organizer = Organizer(vault, LibrarySettings(filename_template="{unknown}"), probe)
    make_file("inbox/Cross Body Lead.mp4")

    assert organizer.organize("inbox/Cross Body Lead.mp4") == "Dance/cross-body-lead.mp4"


def test_destination_folder(organizer):
    rec = SidecarRecord(dance="Salsa", style="On 2", class_level="")
    assert organizer.destination_folder(rec) == "Dance/salsa/on-2"


def test_organize_rejects_missing_and_unsupported(vault, make_file, organizer):
    make_file("inbox/notes.txt", "hello")

    with pytest.raises(StepNotFoundError):
        organizer.organize("inbox/gone.mp4")
    with pytest.raises(UnsupportedMediaError):
        organizer.organize("inbox/notes.txt")


def test_avi_is_accepted_for_intake(vault, make_file, organizer):
    make_file("inbox/clip.avi")
    assert organizer.organize("inbox/clip.avi") == "Dance/clip.avi"
    assert has_intake_extension("AVI")
    assert has_intake_extension(".mov")
    assert not has_intake_extension("txt")


def test_import_video_stages_and_cleans_up(vault, tmp_path, organizer):
    source = tmp_path / "outside" / "My Clip.mov"
    source.parent.mkdir()
    source.write_bytes(b"clip")

    dest = organizer.import_video(source, MetadataPatch(step_name="Turn", dance="Salsa"))

    assert dest == "Dance/salsa/turn.mov"
    assert (vault.root / dest).read_bytes() == b"clip"
    assert list((vault.root / "_imports").iterdir()) == []
    fields, _ = parse_frontmatter(read(vault, "Dance/salsa/turn.md"))
    assert fields["stepName"] == "Turn"
    assert fields["dance"] == "Salsa"
    assert fields["duration"] == 12.5


def test_import_without_name_uses_file_stem(vault, tmp_path, organizer):
    source = tmp_path / "Basic Step.mp4"
    source.write_bytes(b"clip")

    dest = organizer.import_video(source)

    assert dest == "Dance/basic-step.mp4"
    assert parse_frontmatter(read(vault, "Dance/basic-step.md"))[0]["stepName"] == "Basic Step"


def test_import_cleans_up_when_organize_fails(vault, tmp_path, organizer, monkeypatch):
    source = tmp_path / "clip.mp4"
    source.write_bytes(b"clip")

    def boom(path):
        raise OrganizeError("disk full")

    monkeypatch.setattr(organizer, "organize", boom)

    with pytest.raises(OrganizeError):
        organizer.import_video(source)
    assert list((vault.root / "_imports").iterdir()) == []


def test_import_rejects_unsupported(vault, tmp_path, organizer):
    source = tmp_path / "notes.txt"
    source.write_text("hello")

    with pytest.raises(UnsupportedMediaError):
        organizer.import_video(source)
    assert list(vault.root.iterdir()) == []


def test_quick_import(vault, tmp_path, organizer):
    source = tmp_path / "Salsa Move.MP4"
    source.write_bytes(b"clip")

    first = organizer.quick_import(source)
    second = organizer.quick_import(source)

    assert first.path == "Dance/Imported/salsa-move.MP4"
    assert first.name == "Salsa Move"
    assert first.extension == "MP4"
    assert second.path == "Dance/Imported/salsa-move 2.MP4"
    assert not (vault.root / "Dance/Imported/salsa-move.md").exists()


def test_is_organized(organizer):
    assert organizer.is_organized("Dance/salsa/step.mp4")
    assert organizer.is_organized("_imports/123-step.mp4")
    assert not organizer.is_organized("Dancers/step.mp4")
    assert not organizer.is_organized("inbox/step.mp4")


def test_organize_pending_skips_library_and_failures(vault, make_file, organizer):
    make_file("inbox/a.mp4")
    make_file("Dance/done.mp4")
    items = [
        MediaItem(path="inbox/a.mp4", basename="a", extension="mp4", name="a"),
        MediaItem(path="inbox/gone.mp4", basename="gone", extension="mp4", name="gone"),
        MediaItem(path="Dance/done.mp4", basename="done", extension="mp4", name="done"),
    ]

    assert organizer.organize_pending(items) == ["Dance/a.mp4"]
    assert organizer.organize_pending(items[2:]) == []
