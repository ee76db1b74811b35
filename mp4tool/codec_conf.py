"""Codec strings (RFC 6381 style) taken from a track's sample description."""

from __future__ import annotations

from mp4tool.box_types import MINF, STSD, RawDataBox, fourcc, fourcc_to_str
from mp4tool.boxes import Box, DataBox, select, select_data

# A SampleEntry is 8 bytes; a VisualSampleEntry adds 70 more.
_VISUAL_SAMPLE_ENTRY_SIZE = 8 + 70
_EXTENSION_HEAD_SIZE = 8

AVC1 = fourcc("avc1")
AVCC = fourcc("avcC")
HEV1 = fourcc("hev1")
HVCC = fourcc("hvcC")
MP4A = fourcc("mp4a")
AC3 = fourcc("ac-3")


def _visual_codecs(entry: DataBox) -> str | None:
    data = bytes(entry.data.boxdata)
    body_size = entry.head.boxsize - entry.head.boxheadsize
    position = _VISUAL_SAMPLE_ENTRY_SIZE

    while position + _EXTENSION_HEAD_SIZE < body_size:
        ext_head = data[position:position + _EXTENSION_HEAD_SIZE]
        if len(ext_head) < _EXTENSION_HEAD_SIZE:
            raise ValueError(f"sample entry truncated at byte {position}")
        ext_size = int.from_bytes(ext_head[:4], "big")
        ext_type = int.from_bytes(ext_head[4:], "big")

        if ext_type == AVCC:
            body = position + _EXTENSION_HEAD_SIZE
            profile_level = data[body + 1:body + 4]
            if len(profile_level) < 3:
                raise ValueError("avcC extension truncated")
            return f"{fourcc_to_str(entry.head.boxtype)}.{profile_level.hex()}"

        if ext_size == 0:
            raise ValueError(f"zero-size extension at byte {position}")
        position += ext_size

    return None


def decoder_conf_string(minf: Box) -> str | None:
    """Return the codecs string of the first recognised sample entry under ``minf``.

    Returns None when there is no sample description or no entry that names
    a known codec.
    """
    if minf.head.boxtype != MINF:
        raise ValueError(f"expected a minf box, got {fourcc_to_str(minf.head.boxtype)}")

    stsd = select(minf, STSD)
    if not stsd:
        return None

    for entry in select_data(stsd[0], RawDataBox):
        entry_type = entry.head.boxtype
        if entry_type in (AVC1, HEV1):
            return _visual_codecs(entry)
        if entry_type == MP4A:
            return "mp4a.40.2"
        if entry_type == AC3:
            return "ac3"

    return None