import pytest

from hevc_shrinker.domain.media import DiscoveredFile
from hevc_shrinker.domain.temp_models import TempArtifacts, is_temp_artifact, temp_owner_stem
from hevc_shrinker.domain.work_unit import IllegalTransition, LifecycleState, WorkUnit
from hevc_shrinker.services.logging_service import ErrorLog
from hevc_shrinker.utils.format_utils import format_epoch, format_size_change, formatted_size


# --- Error log ---

def test_error_log_appends_one_line_per_failure(tmp_path):
    log = ErrorLog(tmp_path / "logs" / "error.log")
    log.write("video", tmp_path / "a.mp4", "ffmpeg exited with code 1\nsecond line")
    log.write("mux", tmp_path / "b.mp4", "mux failed")

    lines = (tmp_path / "logs" / "error.log").read_text(encoding="utf-8").splitlines()
    assert len(lines) == 2
    assert f"[video] {tmp_path.resolve() / 'a.mp4'}: ffmpeg exited with code 1 | second line" in lines[0]
    assert "[mux]" in lines[1]


# --- Temp artifacts ---

def test_temp_artifacts_removed_on_failure(tmp_path):
    with pytest.raises(RuntimeError):
        with TempArtifacts() as temps:
            video = temps.register(tmp_path / "Movie.shrink-video.mkv")
            video.write_bytes(b"v")
            raise RuntimeError("encoder crashed")
    assert not video.exists()


def test_released_temp_survives(tmp_path):
    with TempArtifacts() as temps:
        promoted = temps.register(tmp_path / "Movie.shrink-new.mkv")
        promoted.write_bytes(b"n")
        temps.release(promoted)
    assert promoted.exists()


def test_register_clears_stale_file(tmp_path):
    stale = tmp_path / "Movie.shrink-video.mkv"
    stale.write_bytes(b"old")
    with TempArtifacts() as temps:
        temps.register(stale)
        assert not stale.exists()
        assert temps.paths == [stale]


@pytest.mark.parametrize(
    "name,expected",
    [
        ("Movie.shrink-video.mkv", True),
        ("Movie.shrink-audio.wav", True),
        ("Movie.shrink-remux.mkv", True),
        ("Movie.mkv", False),
        ("Movie.shrink-notes.txt", False),
        ("shrink-video.mkv", False),
    ],
)
def test_is_temp_artifact(name, expected):
    assert is_temp_artifact(name) is expected


@pytest.mark.parametrize(
    "name,expected",
    [
        ("Movie.shrink-video.mkv", "Movie"),
        ("Trip.2019.shrink-audio.m4a", "Trip.2019"),
        (".shrink-new.mkv", None),
        ("Movie.mkv", None),
    ],
)
def test_temp_owner_stem(name, expected):
    assert temp_owner_stem(name) == expected


# --- Work unit lifecycle ---

def test_lifecycle_transitions(tmp_path):
    unit = WorkUnit(DiscoveredFile.from_path(tmp_path / "a.mp4"))
    unit.transition(LifecycleState.PROBED)
    unit.transition(LifecycleState.CLASSIFIED)
    unit.transition(LifecycleState.TRANSCODED)
    unit.transition(LifecycleState.FINALIZED)
    assert unit.is_terminal
    with pytest.raises(IllegalTransition):
        unit.transition(LifecycleState.FAILED)


def test_cannot_skip_probe(tmp_path):
    unit = WorkUnit(DiscoveredFile.from_path(tmp_path / "a.mp4"))
    with pytest.raises(IllegalTransition):
        unit.transition(LifecycleState.CLASSIFIED)


def test_fail_is_reachable_from_any_state(tmp_path):
    unit = WorkUnit(DiscoveredFile.from_path(tmp_path / "a.mp4"))
    unit.transition(LifecycleState.PROBED)
    unit.fail("probe", "no video stream")
    assert unit.state is LifecycleState.FAILED
    assert (unit.error_stage, unit.error_message) == ("probe", "no video stream")
    assert unit.is_terminal


# --- Formatting ---

def test_format_size_change():
    assert format_size_change(2 * 1024 * 1024, 1024 * 1024) == (
        f"{formatted_size(2 * 1024 * 1024)} -> {formatted_size(1024 * 1024)} (50.0%)"
    )


def test_format_epoch_missing():
    assert format_epoch(None) == "-"
    assert len(format_epoch(1_700_000_000)) == len("2023-11-14 22:13:20")
