from conftest import write_source
from hevc_shrinker.services.file_processing_service import ProcessVideoFiles


def test_finds_videos_recursively_in_sorted_order(tmp_path):
    root = tmp_path.resolve()
    write_source(root / "b", "two.mkv")
    write_source(root, "one.MP4")
    write_source(root / "a" / "deep", "three.mpeg")
    write_source(root, "notes.txt")
    write_source(root, "poster.jpg")

    found = ProcessVideoFiles(root).files
    assert found == tuple(sorted(found))
    assert {p.name for p in found} == {"one.MP4", "two.mkv", "three.mpeg"}


def test_excluded_dirs_are_not_scanned(tmp_path):
    root = tmp_path.resolve()
    write_source(root, "keep.avi")
    write_source(root / ".Trash" / "Shows", "old.avi")

    found = ProcessVideoFiles(root, excluded_dirs=(root / ".Trash",)).files
    assert [p.name for p in found] == ["keep.avi"]


def test_temp_artifacts_are_set_aside(tmp_path):
    root = tmp_path.resolve()
    write_source(root, "Movie.mp4")
    write_source(root, "Movie.shrink-video.mkv")
    write_source(root, "Movie.shrink-audio.wav")

    handler = ProcessVideoFiles(root)
    assert [p.name for p in handler.files] == ["Movie.mp4"]
    assert {p.name for p in handler.stale_temps} == {"Movie.shrink-video.mkv", "Movie.shrink-audio.wav"}


def test_remove_stale_temps(tmp_path):
    root = tmp_path.resolve()
    write_source(root, "Movie.mkv")
    stale = write_source(root, "Movie.shrink-orig.mkv")
    handler = ProcessVideoFiles(root)

    assert handler.remove_stale_temps(dry_run=True) == [stale]
    assert stale.exists()
    assert handler.remove_stale_temps() == [stale]
    assert not stale.exists()


def test_temp_names_without_a_source_beside_them_are_user_files(tmp_path):
    root = tmp_path.resolve()
    trip = write_source(root, "Trip.shrink-new.mkv")
    track = write_source(root, "Trip.shrink-audio.wav")
    write_source(root / "other", "Trip.mp4")

    handler = ProcessVideoFiles(root)
    assert handler.stale_temps == ()
    assert {p.name for p in handler.files} == {"Trip.shrink-new.mkv", "Trip.mp4"}

    assert handler.remove_stale_temps() == []
    assert trip.exists()
    assert track.exists()


def test_missing_root_finds_nothing(tmp_path):
    handler = ProcessVideoFiles(tmp_path / "absent")
    assert handler.files == ()
    assert handler.stale_temps == ()
