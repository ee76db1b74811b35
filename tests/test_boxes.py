import pytest

from mp4tool.box_types import (
    MDHD,
    MDIA,
    MOOV,
    MP4FILE,
    MVHD,
    REMOVED,
    TKHD,
    TRAK,
    BoxHead,
    MediaHeaderBox,
    MovieHeaderBox,
    TrackHeaderBox,
)
from mp4tool.boxes import (
    ContainerBox,
    DataBox,
    Mp4File,
    Visitor,
    select,
    select_data,
)


def _track(track_id):
    trak = ContainerBox(TRAK)
    trak.add_child(DataBox(TKHD, TrackHeaderBox(track_id=track_id)))
    mdia = ContainerBox(MDIA)
    mdia.add_child(DataBox(MDHD, MediaHeaderBox(timescale=track_id * 10)))
    trak.add_child(mdia)
    return trak


def _movie():
    mp4 = Mp4File("movies/clip.mp4")
    moov = ContainerBox(MOOV)
    moov.add_child(DataBox(MVHD, MovieHeaderBox(timescale=600)))
    moov.add_child(_track(1))
    moov.add_child(_track(2))
    mp4.add_child(moov)
    return mp4


def test_mp4file_root_type_and_path():
    mp4 = Mp4File("a/b.mp4")
    assert mp4.head.boxtype == MP4FILE
    assert mp4.path == "a/b.mp4"
    assert mp4.boxes == []


def test_select_finds_descendants_in_order():
    mp4 = _movie()
    tkhds = select(mp4, TKHD)
    assert [b.data.track_id for b in tkhds] == [1, 2]


def test_select_includes_root_when_matching():
    trak = _track(5)
    found = select(trak, TRAK)
    assert found[0] is trak
    assert len(found) == 1


def test_method_select_excludes_self():
    trak = _track(5)
    assert trak.select(TRAK) == []


def test_select_data_by_payload_type():
    mp4 = _movie()
    mdhds = select_data(mp4, MediaHeaderBox)
    assert [b.data.timescale for b in mdhds] == [10, 20]
    assert all(b.head.boxtype == MDHD for b in mdhds)


def test_select_data_on_leaf_itself():
    leaf = DataBox(MVHD, MovieHeaderBox(duration=7))
    assert select_data(leaf, MovieHeaderBox) == [leaf]
    assert select_data(leaf, TrackHeaderBox) == []


def test_is_type_exact():
    leaf = DataBox(TKHD, TrackHeaderBox())
    assert leaf.is_type(TrackHeaderBox)
    assert not leaf.is_type(MediaHeaderBox)
    assert not ContainerBox(MOOV).is_type(TrackHeaderBox)


def test_clone_is_independent():
    mp4 = _movie()
    twin = mp4.clone()
    select(twin, TKHD)[0].data.track_id = 99
    select(twin, MOOV)[0].boxes.pop()
    assert [b.data.track_id for b in select(mp4, TKHD)] == [1, 2]
    assert len(select(twin, TRAK)) == 1
    assert twin.path == mp4.path


def test_remove_container_blanks_it():
    trak = _track(3)
    trak.head.offset = 100
    trak.head.boxsize = 50
    trak.remove()
    assert trak.head.boxtype == REMOVED
    assert (trak.head.offset, trak.head.boxsize, trak.head.boxheadsize) == (0, 0, 0)
    assert trak.boxes == []


def test_remove_data_box_blanks_head():
    leaf = DataBox(BoxHead(offset=8, boxsize=16, boxtype=TKHD), TrackHeaderBox())
    leaf.remove()
    assert leaf.head.boxtype == REMOVED
    assert leaf.head.boxsize == 0


def test_data_box_cannot_hold_children():
    leaf = DataBox(TKHD, TrackHeaderBox())
    with pytest.raises(TypeError):
        leaf.add_child(ContainerBox(MOOV))


def test_lshift_appends_child():
    moov = ContainerBox(MOOV)
    child = ContainerBox(TRAK)
    result = moov << child
    assert result is moov
    assert moov.boxes == [child]


def test_head_is_copied_on_construction():
    head = BoxHead(boxtype=MOOV, offset=4)
    box = ContainerBox(head)
    head.offset = 40
    assert box.head.offset == 4


def test_default_visitor_reaches_every_leaf():
    class Collector(Visitor):
        def __init__(self):
            self.seen = []

        def visit_data(self, head, data):
            self.seen.append(head.boxtype)

    collector = Collector()
    _movie().accept(collector)
    assert collector.seen == [MVHD, TKHD, MDHD, TKHD, MDHD]


def test_visitor_can_rewrite_children_in_place():
    class DropTracks(Visitor):
        def visit_container(self, head, boxes):
            boxes[:] = [b for b in boxes if b.head.boxtype != TRAK]
            super().visit_container(head, boxes)

    mp4 = _movie()
    mp4.accept(DropTracks())
    assert select(mp4, TRAK) == []
    assert len(select(mp4, MVHD)) == 1