from hevc_shrinker.domain.media import DiscoveredFile
from hevc_shrinker.services.cover_art_service import find_cover_art


def source_in(tmp_path):
    return DiscoveredFile.from_path(tmp_path / "Movie.mp4")


def test_no_cover(tmp_path):
    assert find_cover_art(source_in(tmp_path)) is None


def test_directory_poster_wins(tmp_path):
    (tmp_path / "Movie.jpg").write_bytes(b"1")
    (tmp_path / "Movie-poster.png").write_bytes(b"2")
    (tmp_path / "poster.webp").write_bytes(b"3")
    cover = find_cover_art(source_in(tmp_path))
    assert cover.path.name == "poster.webp"
    assert cover.mime_type == "image/webp"
    assert cover.attachment_name == "cover.webp"


def test_stem_poster_before_stem(tmp_path):
    (tmp_path / "Movie.jpg").write_bytes(b"1")
    (tmp_path / "Movie-poster.png").write_bytes(b"2")
    assert find_cover_art(source_in(tmp_path)).path.name == "Movie-poster.png"


def test_jpg_before_png(tmp_path):
    (tmp_path / "Movie.png").write_bytes(b"1")
    (tmp_path / "Movie.jpg").write_bytes(b"2")
    cover = find_cover_art(source_in(tmp_path))
    assert cover.path.name == "Movie.jpg"
    assert cover.mime_type == "image/jpeg"


def test_name_order_outranks_extension_order(tmp_path):
    (tmp_path / "Movie-poster.jpg").write_bytes(b"1")
    (tmp_path / "poster.png").write_bytes(b"2")
    assert find_cover_art(source_in(tmp_path)).path.name == "poster.png"
