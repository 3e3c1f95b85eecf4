"""Archive tests: naming, empty no-op, workspace format used for entries."""

import zipfile
from io import BytesIO

from imgbatch.archive import build_archive, entry_name
from imgbatch.conversion.models import ConvertedImage, TargetFormat


def out(data: bytes, fmt=TargetFormat.WEBP) -> ConvertedImage:
    return ConvertedImage(data=data, target_format=fmt, source_name="x", width=1, height=1)


def test_empty_outputs_build_nothing():
    assert build_archive([], "webp") is None


def test_two_webp_outputs():
    archive = build_archive([out(b"one"), out(b"two")], "webp", clock=lambda: 1700000000123)

    with zipfile.ZipFile(BytesIO(archive.data)) as zf:
        assert sorted(zf.namelist()) == ["converted_1.webp", "converted_2.webp"]
        assert zf.read("converted_1.webp") == b"one"
        assert zf.read("converted_2.webp") == b"two"
    assert archive.filename == "converted_images_1700000000123.zip"
    assert archive.entries == ["converted_1.webp", "converted_2.webp"]
    assert archive.size == len(archive.data)


def test_raw_bytes_accepted():
    archive = build_archive([b"\x89PNG"], TargetFormat.PNG)

    with zipfile.ZipFile(BytesIO(archive.data)) as zf:
        assert zf.namelist() == ["converted_1.png"]


def test_default_filename_uses_epoch_millis():
    archive = build_archive([b"a"], "jpeg")

    stamp = archive.filename.removeprefix("converted_images_").removesuffix(".zip")
    assert stamp.isdigit() and len(stamp) >= 13


def test_entry_name_is_one_based():
    assert entry_name(0, "jpeg") == "converted_1.jpeg"
    assert entry_name(9, TargetFormat.PNG) == "converted_10.png"


def test_workspace_archive_uses_format_of_outputs(workspace):
    workspace.converted = [out(b"a", TargetFormat.JPEG)]
    workspace.set_target_format("png")

    archive = workspace.build_archive()

    assert archive.entries == ["converted_1.jpeg"]


def test_workspace_without_outputs_has_no_archive(workspace):
    assert workspace.build_archive() is None
