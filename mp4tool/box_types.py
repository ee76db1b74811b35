"""Box type codes and the payload structures of ISO/IEC 14496-12 boxes."""

from __future__ import annotations

from dataclasses import dataclass, field
from typing import ClassVar

_U16 = 2
_U32 = 4
_U64 = 8


def fourcc(text: str) -> int:
    """Return the 32-bit big-endian code of a four-character box type."""
    if len(text) != 4:
        raise ValueError(f"box type must be four characters: {text!r}")
    return int.from_bytes(text.encode("latin-1"), "big")


def fourcc_to_str(value: int) -> str:
    """Return the four characters that a 32-bit box type code spells."""
    if not 0 <= value <= 0xFFFFFFFF:
        raise ValueError(f"box type out of 32-bit range: {value:#x}")
    return value.to_bytes(4, "big").decode("latin-1")


# Pseudo type of the whole file, the root of the box tree.
MP4FILE = 0xFFFFFFFF

BXML = 0x62786D6C
CO64 = 0x636F3634
CPRT = 0x63707274
CTTS = 0x63747473
DINF = 0x64696E66
DREF = 0x64726566
EDTS = 0x65647473
ELST = 0x656C7374
FREE = 0x66726565
FRMA = 0x66726D61
FTYP = 0x66747970
HDLR = 0x68646C72
HMHD = 0x686D6864
IINF = 0x69696E66
ILOC = 0x696C6F63
IMIF = 0x696D6966
INFE = 0x696E6665
IPMC = 0x69706D63
IPRO = 0x6970726F
MDAT = 0x6D646174
MDHD = 0x6D646864
MDIA = 0x6D646961
MEHD = 0x6D656864
META = 0x6D657461
MFHD = 0x6D666864
MFRA = 0x6D667261
MFRO = 0x6D66726F
MINF = 0x6D696E66
MOOF = 0x6D6F6F66
MOOV = 0x6D6F6F76
MVEX = 0x6D766578
MVHD = 0x6D766864
NMHD = 0x6E6D6864
PADB = 0x70616462
PDIN = 0x7064696E
PITM = 0x7069746D
SBGP = 0x73626770
SCHI = 0x73636869
SCHM = 0x7363686D
SDTP = 0x73647470
SGPD = 0x73677064
SINF = 0x73696E66
SKIP = 0x736B6970
SMHD = 0x736D6864
SRPP = 0x73727070
STBL = 0x7374626C
STCO = 0x7374636F
STDP = 0x73746470
STSC = 0x73747363
STSD = 0x73747364
STSH = 0x73747368
STSL = 0x7374736C
STSS = 0x73747373
STSZ = 0x7374737A
STTS = 0x73747473
STZ2 = 0x73747A32
SUBS = 0x73756273
TFHD = 0x74666864
TFRA = 0x74667261
TKHD = 0x746B6864
TRAF = 0x74726166
TRAK = 0x7472616B
TREF = 0x74726566
TREX = 0x74726578
TRUN = 0x7472756E
UDTA = 0x75647461
VMHD = 0x766D6864
XML = 0x786D6C20
URL = 0x75726C20
URN = 0x75726E20
UUID = 0x75756964

# F4V/HDS
ABST = 0x61627374
ASRT = 0x61737274
AFRT = 0x61667274

# DASH segments
STYP = 0x73747970
SIDX = 0x73696478
TFDT = 0x74666474

# Type given to a box that has been removed from the tree.
REMOVED = fourcc("----")

FULLBOX_TYPES = frozenset({
    ABST, CO64, CPRT, CTTS, DREF, ELST, HDLR, HMHD, ILOC, IMIF, INFE, IPMC,
    MDHD, MEHD, META, MFHD, MFRO, MVHD, NMHD, PDIN, PITM, SBGP, SDTP, SGPD,
    SIDX, SMHD, SRPP, STCO, STDP, STSC, STSD, STSH, STSL, STSS, STSZ, STTS,
    STZ2, SUBS, TFHD, TFRA, TKHD, TREX, TRUN, VMHD, URL, URN,
})


@dataclass(slots=True)
class BoxHead:
    """Position, size and type of a box, plus the full-box version and flags."""

    offset: int = 0
    boxheadsize: int = 0
    boxsize: int = 0
    boxtype: int = 0
    version: int = 0
    flag: int = 0

    def is_fullbox(self) -> bool:
        return self.boxtype in FULLBOX_TYPES

    def size(self) -> int:
        """Size of the header as written: 12 bytes for full boxes, else 8."""
        return _U32 * 3 if self.is_fullbox() else _U32 * 2


@dataclass(slots=True)
class FileTypeBox:
    major_brand: str = ""
    minor_version: str = ""
    compatible_brands: list[str] = field(default_factory=list)

    def size(self) -> int:
        return _U32 * (len(self.compatible_brands) + 2)


@dataclass(slots=True)
class MovieHeaderBox:
    creation_time: int = 0
    modification_time: int = 0
    timescale: int = 0
    duration: int = 0
    rate: int = 0
    volume: int = 0
    matrix: list[int] = field(default_factory=list)
    next_track_id: int = 0

    def size(self, version: int) -> int:
        if version == 1:
            return _U64 * 3 + _U32 * 20 + _U16 * 2
        return _U32 * 23 + _U16 * 2


@dataclass(slots=True)
class MovieExtendsHeaderBox:
    fragment_duration: int = 0

    def size(self, version: int) -> int:
        return _U64 if version == 1 else _U32


@dataclass(slots=True)
class TrackHeaderBox:
    creation_time: int = 0
    modification_time: int = 0
    track_id: int = 0
    duration: int = 0
    volume: int = 0
    matrix: list[int] = field(default_factory=list)
    width: int = 0
    height: int = 0

    def size(self, version: int) -> int:
        if version == 1:
            return _U64 * 3 + _U32 * 15 + _U16 * 4
        return _U32 * 18 + _U16 * 4


@dataclass(slots=True)
class MediaHeaderBox:
    creation_time: int = 0
    modification_time: int = 0
    timescale: int = 0
    duration: int = 0
    language: str = "und"

    def size(self, version: int) -> int:
        if version == 1:
            return _U64 * 3 + _U32 + _U16 * 2
        return _U32 * 4 + _U16 * 2


@dataclass(slots=True)
class HandlerBox:
    VIDEO: ClassVar[int] = 0x76696465
    AUDIO: ClassVar[int] = 0x736F756E
    HINT: ClassVar[int] = 0x68696E74

    handler_type: int = 0
    name: str = ""

    def size(self) -> int:
        return _U32 * 5 + len(self.name)


@dataclass(slots=True)
class VideoMediaHeaderBox:
    graphicsmode: int = 0
    opcolor: list[int] = field(default_factory=lambda: [0, 0, 0])

    def size(self) -> int:
        return _U16 * 4


@dataclass(slots=True)
class SoundMediaHeaderBox:
    balance: int = 0

    def size(self) -> int:
        return _U16 * 2


@dataclass(slots=True)
class HintMediaHeaderBox:
    max_pdu_size: int = 0
    avg_pdu_size: int = 0
    max_bitrate: int = 0
    avg_bitrate: int = 0

    def size(self) -> int:
        return _U32 * 3 + _U16 * 2


@dataclass(slots=True)
class SampleToChunkEntry:
    first_chunk: int = 0
    samples_per_chunk: int = 0
    sample_description_index: int = 0


@dataclass(slots=True)
class SampleToChunkBox:
    entries: list[SampleToChunkEntry] = field(default_factory=list)

    def size(self) -> int:
        return _U32 * (1 + len(self.entries) * 3)


@dataclass(slots=True)
class TimeToSampleEntry:
    sample_count: int = 0
    sample_delta: int = 0


@dataclass(slots=True)
class TimeToSampleBox:
    entries: list[TimeToSampleEntry] = field(default_factory=list)

    def size(self) -> int:
        return _U32 * (1 + len(self.entries) * 2)


@dataclass(slots=True)
class CompositionOffsetEntry:
    sample_count: int = 0
    sample_offset: int = 0


@dataclass(slots=True)
class CompositionOffsetBox:
    entries: list[CompositionOffsetEntry] = field(default_factory=list)

    def size(self) -> int:
        return _U32 * (1 + len(self.entries) * 2)


@dataclass(slots=True)
class SampleSizeBox:
    sample_size: int = 0
    entry_sizes: list[int] = field(default_factory=list)

    def size(self) -> int:
        return _U32 * (2 + len(self.entry_sizes))


@dataclass(slots=True)
class ChunkOffsetBox:
    chunk_offsets: list[int] = field(default_factory=list)

    def size(self) -> int:
        return _U32 + _U32 * len(self.chunk_offsets)


@dataclass(slots=True)
class ChunkLargeOffsetBox:
    chunk_offsets: list[int] = field(default_factory=list)

    def size(self) -> int:
        return _U32 + _U64 * len(self.chunk_offsets)


@dataclass(slots=True)
class SyncSampleBox:
    sample_numbers: list[int] = field(default_factory=list)

    def size(self) -> int:
        return _U32 * (1 + len(self.sample_numbers))


@dataclass(slots=True)
class SampleDependencyTypeBox:
    """One byte per sample: reserved(2), depends_on(2), is_depended_on(2), has_redundancy(2)."""

    sample_dependencies: list[int] = field(default_factory=list)

    def size(self) -> int:
        return len(self.sample_dependencies)


@dataclass(slots=True)
class EditListEntry:
    segment_duration: int = 0
    media_time: int = 0
    media_rate_integer: int = 0
    media_rate_fraction: int = 0


@dataclass(slots=True)
class EditListBox:
    entries: list[EditListEntry] = field(default_factory=list)

    def size(self, version: int) -> int:
        if version == 1:
            return _U32 + (_U64 * 2 + _U16 * 2) * len(self.entries)
        return _U32 + (_U32 * 2 + _U16 * 2) * len(self.entries)


@dataclass(slots=True)
class SegmentIndexReference:
    reference_type: bool = False
    reference_size: int = 0
    subsegment_duration: int = 0
    contains_sap: bool = False
    sap_delta_time: int = 0


@dataclass(slots=True)
class SegmentIndexBox:
    reference_id: int = 0
    timescale: int = 0
    earliest_presentation_time: int = 0
    first_offset: int = 0
    references: list[SegmentIndexReference] = field(default_factory=list)

    def size(self, version: int) -> int:
        if version == 1:
            fixed = _U32 * 2 + _U64 * 2 + _U16 * 2
        else:
            fixed = _U32 * 4 + _U16 * 2
        return fixed + _U32 * 3 * len(self.references)


@dataclass(slots=True)
class MovieFragmentHeaderBox:
    sequence_number: int = 0

    def size(self) -> int:
        return _U32


@dataclass(slots=True)
class TrackExtendsBox:
    track_id: int = 0
    default_sample_description_index: int = 0
    default_sample_duration: int = 0
    default_sample_size: int = 0
    default_sample_flags: int = 0

    def size(self) -> int:
        return _U32 * 5


# tfhd flags
TFHD_BASE_DATA_OFFSET_PRESENT = 0x000001
TFHD_SAMPLE_DESCRIPTION_INDEX_PRESENT = 0x000002
TFHD_DEFAULT_SAMPLE_DURATION_PRESENT = 0x000008
TFHD_DEFAULT_SAMPLE_SIZE_PRESENT = 0x000010
TFHD_DEFAULT_SAMPLE_FLAGS_PRESENT = 0x000020
TFHD_DURATION_IS_EMPTY = 0x010000


@dataclass(slots=True)
class TrackFragmentHeaderBox:
    track_id: int = 0
    base_data_offset: int = 0
    sample_description_index: int = 0
    default_sample_duration: int = 0
    default_sample_size: int = 0
    default_sample_flags: int = 0

    def size(self, flag: int) -> int:
        total = _U32
        if flag & TFHD_BASE_DATA_OFFSET_PRESENT:
            total += _U64
        for bit in (
            TFHD_SAMPLE_DESCRIPTION_INDEX_PRESENT,
            TFHD_DEFAULT_SAMPLE_DURATION_PRESENT,
            TFHD_DEFAULT_SAMPLE_SIZE_PRESENT,
            TFHD_DEFAULT_SAMPLE_FLAGS_PRESENT,
        ):
            if flag & bit:
                total += _U32
        return total


@dataclass(slots=True)
class TrackFragmentDecodeTimeBox:
    decode_time: int = 0

    def size(self) -> int:
        return _U64


# trun flags
TRUN_DATA_OFFSET_PRESENT = 0x000001
TRUN_FIRST_SAMPLE_FLAGS_PRESENT = 0x000004
TRUN_SAMPLE_DURATION_PRESENT = 0x000100
TRUN_SAMPLE_SIZE_PRESENT = 0x000200
TRUN_SAMPLE_FLAGS_PRESENT = 0x000400
TRUN_SAMPLE_COMPOSITION_TIME_OFFSETS_PRESENT = 0x000800

_TRUN_PER_SAMPLE_FLAGS = (
    TRUN_SAMPLE_DURATION_PRESENT,
    TRUN_SAMPLE_SIZE_PRESENT,
    TRUN_SAMPLE_FLAGS_PRESENT,
    TRUN_SAMPLE_COMPOSITION_TIME_OFFSETS_PRESENT,
)


@dataclass(slots=True)
class TrackRunSample:
    sample_duration: int = 0
    sample_size: int = 0
    sample_flags: int = 0
    sample_composition_time_offset: int = 0


@dataclass(slots=True)
class TrackRunBox:
    data_offset: int = 0
    first_sample_flags: int = 0
    samples: list[TrackRunSample] = field(default_factory=list)

    def size(self, flag: int) -> int:
        total = _U32
        if flag & TRUN_DATA_OFFSET_PRESENT:
            total += _U32
        if flag & TRUN_FIRST_SAMPLE_FLAGS_PRESENT:
            total += _U32
        per_sample = sum(_U32 for bit in _TRUN_PER_SAMPLE_FLAGS if flag & bit)
        return total + per_sample * len(self.samples)


@dataclass(slots=True)
class RawDataBox:
    """Payload of a box kept as uninterpreted bytes."""

    boxdata: bytes = b""


@dataclass(slots=True)
class EmptyBox:
    """Payload of a box that carries no data."""


@dataclass(slots=True)
class TrackFragmentRandomAccessEntry:
    moof_offset: int = 0
    traf_number: int = 0
    trun_number: int = 0
    sample_number: int = 0


@dataclass(slots=True)
class TrackFragmentRandomAccessBox:
    track_id: int = 0
    entries: dict[int, TrackFragmentRandomAccessEntry] = field(default_factory=dict)


@dataclass(slots=True)
class MovieFragmentRandomAccessOffsetBox:
    size: int = 0


@dataclass(slots=True)
class MediaDataBox:
    """Media data given as byte ranges of a source file, keyed by offset."""

    uri: str = ""
    byte_ranges: dict[int, int] = field(default_factory=dict)
    chunks: dict[int, int] = field(default_factory=dict)

    def size(self) -> int:
        total = sum(self.byte_ranges.values())
        if self.chunks:
            chunk_total = sum(self.chunks.values())
            if chunk_total != total:
                raise ValueError(
                    f"mdat byte ranges ({total}) and chunks ({chunk_total}) disagree"
                )
        return total