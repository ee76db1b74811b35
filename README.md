# mp4tool

A pure-Python library for working with the box tree of ISO base media files
(MP4 and fragmented MP4). It models the boxes of ISO/IEC 14496-12, plus the
boxes that DASH segments use, as plain Python objects. You can walk and query
such a tree, check it for consistency, and derive the codec string of a track.

The package uses only the standard library.

## Modules

### `mp4tool.box_types`

- `fourcc(text)` turns a four-character box type such as `"moov"` into its
  32-bit big-endian integer. `fourcc_to_str(value)` turns the integer back
  into the characters. Both raise `ValueError` when the input is not four
  characters or not in the 32-bit range.
- Constants give the integer code of each known box type: `MOOV`, `TRAK`,
  `MDIA`, `MINF`, `STBL`, `STSD`, `MDAT`, `MOOF`, `TRAF`, `SIDX`, `TFDT` and the
  others. The root of a tree has the pseudo type `MP4FILE`. A removed box gets
  the type `REMOVED` (`"----"`).
- `BoxHead` holds the offset, header size, box size, type, version and flags
  of a box. `is_fullbox()` tells whether the type carries a version and flags.
  `size()` gives the header length as written: 12 bytes for a full box, 8 for
  any other.
- The payload data classes are `FileTypeBox`, `MovieHeaderBox`,
  `MovieExtendsHeaderBox`, `TrackHeaderBox`, `MediaHeaderBox`, `HandlerBox`,
  `VideoMediaHeaderBox`, `SoundMediaHeaderBox`, `HintMediaHeaderBox`,
  `SampleToChunkBox`, `TimeToSampleBox`, `CompositionOffsetBox`,
  `SampleSizeBox`, `ChunkOffsetBox`, `ChunkLargeOffsetBox`, `SyncSampleBox`,
  `SampleDependencyTypeBox`, `EditListBox`, `SegmentIndexBox`,
  `MovieFragmentHeaderBox`, `TrackExtendsBox`, `TrackFragmentHeaderBox`,
  `TrackFragmentDecodeTimeBox`, `TrackRunBox`, `TrackFragmentRandomAccessBox`,
  `MovieFragmentRandomAccessOffsetBox`, `MediaDataBox`, `RawDataBox` and
  `EmptyBox`. Boxes that hold lists use entry classes such as
  `SampleToChunkEntry`, `TimeToSampleEntry`, `EditListEntry` and
  `TrackRunSample`.
- Most payloads have a `size()` method that gives the serialized length of
  the body. It takes the version or the flags where the layout depends on
  them. `MediaDataBox.size()` adds up its byte ranges. It raises `ValueError`
  when those ranges disagree with its chunks.

### `mp4tool.boxes`

- `Box` is the abstract node. Each box has a `head` (`BoxHead`) and these
  methods:
  - `clone()` makes a deep copy.
  - `remove()` blanks the box out.
  - `accept(visitor)` hands the box to a visitor.
  - `select(boxtype)` and `select_type(data_type)` search the descendants.
  - `is_type(data_type)` tests the type of the payload.
  - `add_child(box)`, also written `box << child`, adds a child.
- `ContainerBox` holds a list of children in `boxes`.
- `DataBox` is a leaf that carries one payload object in `data`.
- `Mp4File` is the root container. It remembers the `path` it was given.
- `Visitor` is the base class for walking a tree. Override
  `visit_container(head, boxes)` and `visit_data(head, data)`. A container
  passes its own child list, so a visitor may rewrite the list in place.
- `select(box, boxtype)` returns the box itself if it has the type, followed
  by every matching descendant in depth-first order.
- `select_data(box, data_type)` does the same for boxes whose payload is of
  the given class.

### `mp4tool.io_file`

`MediaFile` (or `open_media_file(path)`) opens a file for binary reading and
records its `size`.

- `read(size)`, `seek(offset, origin)`, `position()`, `is_open()` and
  `close()` work on the open file.
- It can be used as a context manager.
- Seeking outside the file raises `ValueError`, as does working on a file that
  is not open.

### `mp4tool.validate`

`validate(box)` walks a tree rooted in an `Mp4File` and returns a list of
`ValidationIssue` objects. Each issue has a `severity` (`Severity.WARNING` or
`Severity.ERROR`) and a `message`. Each issue is also sent to the module's
logger.

It reports:

- boxes in a place where they are not expected;
- a count of `moov` boxes other than one;
- empty or inconsistent `stsc`/`stco`/`co64`/`stsz` tables;
- chunks that do not add up to the `mdat` data;
- `stss` missing from a video track, or present in a non-video track;
- `ctts` in a non-video track;
- sample counts that disagree between `stts`, `stsz` and `ctts`;
- durations that disagree between `mvhd`, `tkhd`, `mdhd` and `stts`;
- composition times that cross a GOP boundary.

`ValidationVisitor` is the visitor that does the work. Its `issues` list holds
the results.

### `mp4tool.codec_conf`

`decoder_conf_string(minf)` looks at the sample entries under a track's `minf`
box and returns a codec string:

- `avc1`/`hev1` entries give the entry type followed by the three
  profile/level bytes of the `avcC` extension, for example `avc1.64001f`;
- `mp4a` gives `mp4a.40.2`;
- `ac-3` gives `ac3`.

It returns `None` when there is no sample description or no recognised entry.
It raises `ValueError` for a box that is not `minf` or for truncated entry
data.

## Example

```python
from mp4tool.box_types import (
    MINF, MOOV, MVHD, STSD, MovieHeaderBox, RawDataBox, fourcc,
)
from mp4tool.boxes import ContainerBox, DataBox, Mp4File, select_data
from mp4tool.codec_conf import decoder_conf_string
from mp4tool.validate import validate

mp4 = Mp4File("movie.mp4")
moov = ContainerBox(MOOV)
moov << DataBox(MVHD, MovieHeaderBox(timescale=1000, duration=5000))
mp4 << moov

[mvhd] = select_data(mp4, MovieHeaderBox)
assert mvhd.data.duration == 5000
assert validate(mp4) == []

minf = ContainerBox(MINF)
stsd = ContainerBox(STSD)
stsd << DataBox(fourcc("mp4a"), RawDataBox())
minf << stsd
assert decoder_conf_string(minf) == "mp4a.40.2"
```

## What the package does not do

mp4tool works on box trees that are already built in memory.

- It has no parser that reads an MP4 file into a tree. `MediaFile` only reads
  bytes.
- It has no writer that serializes a tree back to a file.
- It has no command-line program.
- It does not produce HLS or DASH manifests, segments or dumps.

## Running the tests

Install the package with its `test` extra, then run `pytest` from the project
directory.