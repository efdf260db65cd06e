from dataclasses import replace

import pytest

from conftest import HEVC_AAC_1080, FakeEngine, make_profile, temp_leftovers, write_source
from hevc_shrinker.config.common import (
    OUTCOME_DRY_RUN,
    OUTCOME_FAILED,
    OUTCOME_KEPT_AS_IS,
    OUTCOME_REMUXED,
    OUTCOME_SKIPPED,
    OUTCOME_TRANSCODED,
)
from hevc_shrinker.domain.exceptions import StartupException
from hevc_shrinker.pipeline.video_pipeline import ShrinkPipeline
from hevc_shrinker.services.ledger_service import ProcessedFileLedger


def make_pipeline(settings, engine):
    return ShrinkPipeline(settings, engine=engine, check_tools=False)


def error_lines(settings):
    if not settings.error_log.exists():
        return []
    return settings.error_log.read_text(encoding="utf-8").splitlines()


def test_failure_on_one_file_does_not_stop_the_batch(settings):
    root = settings.scan_root
    for name in ("a.mp4", "b.mp4", "c.mp4"):
        write_source(root, name, 1000)
    engine = FakeEngine(new_sizes={"a.mp4": 400, "c.mp4": 400}, fail={"b.mp4": "video"})

    summary = make_pipeline(settings, engine).run()

    assert summary.counts[OUTCOME_TRANSCODED] == 2
    assert summary.counts[OUTCOME_FAILED] == 1
    assert summary.failed_files == [root / "b.mp4"]
    assert not summary.interrupted

    assert (root / "b.mp4").read_bytes() == b"s" * 1000
    assert not (root / "b.mkv").exists()
    assert temp_leftovers(root) == []

    ledger = ProcessedFileLedger(settings.db_file)
    assert sorted(ledger.list_paths()) == [str(root / "a.mkv"), str(root / "c.mkv")]

    lines = error_lines(settings)
    assert len(lines) == 1
    assert "[video]" in lines[0]
    assert str(root / "b.mp4") in lines[0]


def test_second_run_skips_everything_without_probing(settings):
    root = settings.scan_root
    for name in ("a.mp4", "b.avi"):
        write_source(root, name, 1000)
    make_pipeline(settings, FakeEngine(new_sizes={"a.mp4": 400})).run()
    before = ProcessedFileLedger(settings.db_file).list_entries()

    engine = FakeEngine()
    summary = make_pipeline(settings, engine).run()

    assert summary.counts[OUTCOME_SKIPPED] == 2
    assert summary.total == 2
    assert engine.ops("probe") == []
    assert ProcessedFileLedger(settings.db_file).list_entries() == before


def test_dry_run_touches_nothing(settings):
    settings = replace(settings, dry_run=True)
    root = settings.scan_root
    write_source(root, "a.mp4", 1000)
    stale = root / "a.shrink-video.mkv"
    stale.write_bytes(b"junk")
    engine = FakeEngine()

    summary = make_pipeline(settings, engine).run()

    assert summary.counts[OUTCOME_DRY_RUN] == 1
    assert engine.ops("probe") == ["a.mp4"]
    assert engine.ops("transcode_video") == []
    assert engine.ops("remux") == []
    assert (root / "a.mp4").read_bytes() == b"s" * 1000
    assert stale.exists()
    assert not settings.db_file.exists()
    assert not settings.error_log.exists()
    assert not settings.trash_dir.exists()


def test_dry_run_reads_an_existing_ledger(settings, ledger):
    root = settings.scan_root
    done = write_source(root, "done.mkv")
    ledger.upsert(done, "h", 1)
    write_source(root, "new.mp4")

    engine = FakeEngine()
    summary = make_pipeline(replace(settings, dry_run=True), engine).run()

    assert summary.counts[OUTCOME_SKIPPED] == 1
    assert summary.counts[OUTCOME_DRY_RUN] == 1
    assert engine.ops("probe") == ["new.mp4"]


def test_stale_temps_are_removed_and_not_processed(settings):
    root = settings.scan_root
    write_source(root / "Shows", "ep.avi", 1000)
    stale = write_source(root / "Shows", "ep.shrink-new.mkv", 10)
    engine = FakeEngine(new_sizes={"ep.avi": 400})

    summary = make_pipeline(settings, engine).run()

    assert not stale.exists()
    assert summary.total == 1
    assert engine.ops("probe") == ["ep.avi"]
    assert (root / "Shows" / "ep.mkv").read_bytes() == b"n" * 400
    assert temp_leftovers(root) == []


def test_holding_area_is_not_scanned(settings):
    write_source(settings.trash_dir, "old.mp4")
    engine = FakeEngine()
    summary = make_pipeline(settings, engine).run()
    assert summary.total == 0
    assert engine.calls == []


def test_probe_failure_is_logged_with_stage(settings):
    root = settings.scan_root
    write_source(root, "broken.mp4")
    summary = make_pipeline(settings, FakeEngine(fail={"broken.mp4": "probe"})).run()

    assert summary.counts[OUTCOME_FAILED] == 1
    lines = error_lines(settings)
    assert len(lines) == 1
    assert "[probe]" in lines[0]


def test_unexpected_error_is_contained(settings):
    root = settings.scan_root
    write_source(root, "a.mp4")
    write_source(root, "b.mp4")

    class ExplodingEngine(FakeEngine):
        def probe(self, path):
            if path.name == "a.mp4":
                raise RuntimeError("boom")
            return super().probe(path)

    summary = make_pipeline(settings, ExplodingEngine(new_sizes={"b.mp4": 10})).run()

    assert summary.counts[OUTCOME_FAILED] == 1
    assert summary.counts[OUTCOME_TRANSCODED] == 1
    assert "[internal]" in error_lines(settings)[0]


def test_keep_as_is_and_remux_only(settings):
    root = settings.scan_root
    write_source(root, "keep.mkv", 1000)
    write_source(root, "wrap.mp4", 1000)
    engine = FakeEngine(default_profile=HEVC_AAC_1080)

    summary = make_pipeline(settings, engine).run()

    assert summary.counts[OUTCOME_KEPT_AS_IS] == 1
    assert summary.counts[OUTCOME_REMUXED] == 1
    assert engine.ops("remux") == ["wrap.mp4"]
    assert (root / "keep.mkv").read_bytes() == b"s" * 1000
    assert (root / "wrap.mkv").exists()
    assert not (root / "wrap.mp4").exists()

    paths = ProcessedFileLedger(settings.db_file).list_paths()
    assert sorted(paths) == [str(root / "keep.mkv"), str(root / "wrap.mkv")]


def test_uppercase_extension_is_processed(settings):
    root = settings.scan_root
    write_source(root, "LOUD.MP4", 1000)
    engine = FakeEngine(profiles={"LOUD.MP4": make_profile("h264", "aac")}, new_sizes={"LOUD.MP4": 10})
    summary = make_pipeline(settings, engine).run()
    assert summary.counts[OUTCOME_TRANSCODED] == 1
    assert (root / "LOUD.mkv").exists()


def test_keyboard_interrupt_stops_the_batch(settings):
    root = settings.scan_root
    for name in ("a.mp4", "b.mp4", "c.mp4"):
        write_source(root, name)

    class InterruptingEngine(FakeEngine):
        def transcode_video(self, source, plan, output):
            if source.path.name == "b.mp4":
                output.write_bytes(b"partial")
                raise KeyboardInterrupt
            return super().transcode_video(source, plan, output)

    engine = InterruptingEngine(new_sizes={"a.mp4": 10})
    summary = make_pipeline(settings, engine).run()

    assert summary.interrupted
    assert summary.counts[OUTCOME_TRANSCODED] == 1
    assert engine.ops("probe") == ["a.mp4", "b.mp4"]
    assert temp_leftovers(root) == []
    assert (root / "b.mp4").exists()


def test_unwritable_ledger_is_a_startup_failure(settings):
    settings.db_file.mkdir(parents=True)
    with pytest.raises(StartupException):
        make_pipeline(settings, FakeEngine()).run()
