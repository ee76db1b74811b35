import os

import pytest

from mp4tool.io_file import MediaFile, open_media_file

PAYLOAD = b"\x00\x00\x00\x18ftypisom\x00\x00\x02\x00isomiso2"


@pytest.fixture
def sample(tmp_path):
    path = tmp_path / "sample.mp4"
    path.write_bytes(PAYLOAD)
    return str(path)


def test_open_reports_size_and_path(sample):
    f = open_media_file(sample)
    assert f.is_open()
    assert f.size == len(PAYLOAD)
    assert f.path == sample
    assert f.position() == 0
    f.close()


def test_read_sequentially(sample):
    with open_media_file(sample) as f:
        head = f.read(8)
        rest = f.read(len(PAYLOAD))
        assert head + rest == PAYLOAD
        assert head[4:] == b"ftyp"
        assert f.position() == len(PAYLOAD)


def test_read_past_end_is_short(sample):
    with open_media_file(sample) as f:
        f.seek(len(PAYLOAD) - 4)
        assert f.read(100) == PAYLOAD[-4:]


def test_seek_from_end(sample):
    with open_media_file(sample) as f:
        pos = f.seek(-4, os.SEEK_END)
        assert pos == len(PAYLOAD) - 4
        assert f.read(4) == b"iso2"


def test_seek_out_of_range(sample):
    with open_media_file(sample) as f:
        with pytest.raises(ValueError):
            f.seek(len(PAYLOAD) + 1)
        with pytest.raises(ValueError):
            f.seek(-1)
        with pytest.raises(ValueError):
            f.seek(-(len(PAYLOAD) + 1), os.SEEK_END)


def test_read_size_must_be_positive(sample):
    with open_media_file(sample) as f:
        with pytest.raises(ValueError):
            f.read(0)


def test_context_manager_closes(sample):
    with open_media_file(sample) as f:
        pass
    assert not f.is_open()
    with pytest.raises(ValueError):
        f.read(1)
    with pytest.raises(ValueError):
        f.position()


def test_close_is_idempotent(sample):
    f = MediaFile(sample)
    f.close()
    f.close()
    assert not f.is_open()


def test_open_twice_rejected(sample):
    with MediaFile(sample) as f:
        with pytest.raises(ValueError):
            f.open(sample)


def test_missing_file(tmp_path):
    with pytest.raises(FileNotFoundError):
        MediaFile(str(tmp_path / "absent.mp4"))


def test_unopened_file_then_open(sample):
    f = MediaFile()
    assert not f.is_open()
    assert f.size == 0
    f.open(sample)
    assert f.read(len(PAYLOAD)) == PAYLOAD
    f.close()