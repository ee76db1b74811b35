"""Consistency checks over a parsed box tree.

The checks mirror what a well-formed progressive MP4 must satisfy: one movie
box, sample tables that agree with each other and with the media data, sync
samples only in video tracks, and composition times that stay within their
group of pictures.
"""

from __future__ import annotations

import logging
import math
from dataclasses import dataclass, field
from enum import Enum
from itertools import islice
from typing import Any, Callable, Iterator

from mp4tool.box_types import (
    ABST,
    CO64,
    CTTS,
    DINF,
    DREF,
    EDTS,
    ELST,
    FREE,
    FTYP,
    HDLR,
    HMHD,
    MDAT,
    MDHD,
    MDIA,
    META,
    MFHD,
    MFRA,
    MINF,
    MOOF,
    MOOV,
    MP4FILE,
    MVEX,
    MVHD,
    NMHD,
    REMOVED,
    SIDX,
    SKIP,
    SMHD,
    STBL,
    STCO,
    STSC,
    STSD,
    STSS,
    STSZ,
    STTS,
    TFDT,
    TFHD,
    TKHD,
    TRAF,
    TRAK,
    TREF,
    TRUN,
    UDTA,
    URL,
    URN,
    UUID,
    VMHD,
    BoxHead,
    ChunkLargeOffsetBox,
    ChunkOffsetBox,
    CompositionOffsetBox,
    CompositionOffsetEntry,
    HandlerBox,
    MediaDataBox,
    MediaHeaderBox,
    MovieHeaderBox,
    SampleSizeBox,
    SampleToChunkBox,
    SampleToChunkEntry,
    SyncSampleBox,
    TimeToSampleBox,
    TimeToSampleEntry,
    TrackHeaderBox,
    fourcc_to_str,
)
from mp4tool.boxes import Box, Visitor

_log = logging.getLogger(__name__)

DURATION_DIFF_THRESHOLD = 0.1
_DUMP_MAX_ENTRIES = 100

# Boxes skipped entirely, neither checked nor descended into.
_IGNORED = frozenset({REMOVED, FREE, SKIP, META, UUID})

# Children each container may hold.
_ALLOWED_CHILDREN: dict[int, frozenset[int]] = {
    MP4FILE: frozenset({FTYP, MOOF, MDAT, ABST, SIDX, MOOV}),
    MOOV: frozenset({TRAK, MVHD, UDTA}),
    TRAK: frozenset({TKHD, EDTS, MDIA, TREF, UDTA}),
    MDIA: frozenset({MDHD, HDLR, MINF}),
    MINF: frozenset({DINF, STBL, VMHD, SMHD, HMHD, NMHD}),
    STBL: frozenset({STSD, STTS, CTTS, STSC, STSZ, STCO, CO64, STSS}),
    MOOF: frozenset({MFHD, TRAF}),
    TRAF: frozenset({TFHD, TRUN, TFDT}),
    EDTS: frozenset({ELST}),
    DINF: frozenset({DREF, URL, URN}),
    DREF: frozenset({URL, URN}),
}

# Containers whose children are not checked.
_UNCHECKED = frozenset({STSD, MVEX, MFRA, UDTA})


class Severity(Enum):
    WARNING = "WARNING"
    ERROR = "ERROR"


@dataclass(frozen=True, slots=True)
class ValidationIssue:
    severity: Severity
    message: str

    def __str__(self) -> str:
        return f"[{self.severity.value}] {self.message}"


@dataclass(slots=True)
class _Track:
    track_type: int = 0
    tkhd: list[TrackHeaderBox] = field(default_factory=list)
    mdhd: list[MediaHeaderBox] = field(default_factory=list)
    sample_to_chunks: list[SampleToChunkEntry] = field(default_factory=list)
    chunk_offsets: list[int] = field(default_factory=list)
    sample_sizes: list[int] = field(default_factory=list)
    sync_samples: list[int] = field(default_factory=list)
    time_to_samples: list[TimeToSampleEntry] = field(default_factory=list)
    composition_offsets: list[CompositionOffsetEntry] = field(default_factory=list)


class _TableMismatch(Exception):
    """The sample tables of a track do not fit together."""


def _seconds(value: int, timescale: int) -> float:
    if timescale:
        return value / timescale
    if value == 0:
        return math.nan
    return math.copysign(math.inf, value)


def _format_pairs(pairs: list[tuple[int, int]]) -> str:
    parts = [f" ({a},{b})" for a, b in pairs[:_DUMP_MAX_ENTRIES]]
    if len(pairs) > _DUMP_MAX_ENTRIES:
        last = pairs[-1]
        parts.append(f" ... , ({last[0]},{last[1]})")
    return "{" + ",".join(parts) + " }"


class ValidationVisitor(Visitor):
    """Collects the sample tables of every track and checks them for consistency."""

    def __init__(self) -> None:
        self.issues: list[ValidationIssue] = []
        self._movies: list[list[MovieHeaderBox]] = []
        self._tracks: list[_Track] = []
        self._chunks: list[tuple[int, int]] = []
        self._handlers: dict[type, Callable[[BoxHead, Any], None]] = {
            MovieHeaderBox: self._visit_mvhd,
            TrackHeaderBox: self._visit_tkhd,
            MediaHeaderBox: self._visit_mdhd,
            HandlerBox: self._visit_hdlr,
            TimeToSampleBox: self._visit_stts,
            CompositionOffsetBox: self._visit_ctts,
            SampleToChunkBox: self._visit_stsc,
            SampleSizeBox: self._visit_stsz,
            ChunkOffsetBox: self._visit_chunk_offsets,
            ChunkLargeOffsetBox: self._visit_chunk_offsets,
            SyncSampleBox: self._visit_stss,
            MediaDataBox: self._visit_mdat,
        }

    # recording

    def _record(self, severity: Severity, message: str) -> None:
        issue = ValidationIssue(severity, message)
        self.issues.append(issue)
        level = logging.ERROR if severity is Severity.ERROR else logging.WARNING
        _log.log(level, "%s", issue)

    def _warn(self, message: str) -> None:
        self._record(Severity.WARNING, message)

    def _error(self, message: str) -> None:
        self._record(Severity.ERROR, message)

    # traversal

    def visit_container(self, head: BoxHead, boxes: list[Box]) -> None:
        for child in boxes:
            child_type = child.head.boxtype
            if child_type in _IGNORED:
                continue
            self._check_child(head.boxtype, child_type)
            if head.boxtype == MP4FILE and child_type == MOOV:
                self._movies.append([])
            elif head.boxtype == MOOV and child_type == TRAK:
                self._tracks.append(_Track())
            child.accept(self)

        if head.boxtype == MP4FILE:
            self._check_file()

    def visit_data(self, head: BoxHead, data: Any) -> None:
        handler = self._handlers.get(type(data))
        if handler is not None:
            handler(head, data)

    def _check_child(self, parent_type: int, child_type: int) -> None:
        allowed = _ALLOWED_CHILDREN.get(parent_type)
        if allowed is not None:
            if child_type not in allowed:
                self._warn(
                    f"Unexpected box: {fourcc_to_str(parent_type)}/{fourcc_to_str(child_type)}"
                )
        elif parent_type not in _UNCHECKED:
            self._warn(f"Unexpected box: {fourcc_to_str(parent_type)}")

    # payload handlers

    def _current_track(self, name: str) -> _Track | None:
        if not self._tracks:
            self._error(f"{name} outside of a trak")
            return None
        return self._tracks[-1]

    def _movie_header(self) -> MovieHeaderBox | None:
        if self._movies and self._movies[-1]:
            return self._movies[-1][-1]
        return None

    def _visit_mvhd(self, head: BoxHead, mvhd: MovieHeaderBox) -> None:
        if not self._movies:
            self._error("mvhd outside of moov")
            return
        self._movies[-1].append(mvhd)

    def _visit_tkhd(self, head: BoxHead, tkhd: TrackHeaderBox) -> None:
        track = self._current_track("tkhd")
        if track is not None:
            track.tkhd.append(tkhd)
        mvhd = self._movie_header()
        if mvhd is None:
            self._error("tkhd without mvhd")
            return
        diff = _seconds(mvhd.duration - tkhd.duration, mvhd.timescale)
        if diff < -DURATION_DIFF_THRESHOLD or DURATION_DIFF_THRESHOLD < diff:
            self._warn(
                f"mvhd.duration {_seconds(mvhd.duration, mvhd.timescale):g}s"
                f" != tkhd.duration {_seconds(tkhd.duration, mvhd.timescale):g}s"
            )

    def _visit_mdhd(self, head: BoxHead, mdhd: MediaHeaderBox) -> None:
        track = self._current_track("mdhd")
        if track is not None:
            track.mdhd.append(mdhd)
        mvhd = self._movie_header()
        if mvhd is None:
            self._error("mdhd without mvhd")
            return
        media = _seconds(mdhd.duration, mdhd.timescale)
        movie = _seconds(mvhd.duration, mvhd.timescale)
        diff = media - movie
        if diff < -DURATION_DIFF_THRESHOLD or DURATION_DIFF_THRESHOLD < diff:
            self._error(f"mvhd.duration {movie:g}s != mdhd.duration {media:g}s")

    def _visit_hdlr(self, head: BoxHead, hdlr: HandlerBox) -> None:
        track = self._current_track("hdlr")
        if track is not None:
            track.track_type = hdlr.handler_type

    def _visit_stts(self, head: BoxHead, stts: TimeToSampleBox) -> None:
        track = self._current_track("stts")
        if track is not None:
            track.time_to_samples.extend(stts.entries)

    def _visit_ctts(self, head: BoxHead, ctts: CompositionOffsetBox) -> None:
        track = self._current_track("ctts")
        if track is not None:
            track.composition_offsets.extend(ctts.entries)

    def _visit_stsc(self, head: BoxHead, stsc: SampleToChunkBox) -> None:
        track = self._current_track("stsc")
        if track is not None:
            track.sample_to_chunks.extend(stsc.entries)

    def _visit_stsz(self, head: BoxHead, stsz: SampleSizeBox) -> None:
        track = self._current_track("stsz")
        if track is not None:
            track.sample_sizes.extend(stsz.entry_sizes)

    def _visit_chunk_offsets(
        self, head: BoxHead, box: ChunkOffsetBox | ChunkLargeOffsetBox
    ) -> None:
        track = self._current_track(fourcc_to_str(head.boxtype))
        if track is not None:
            track.chunk_offsets.extend(box.chunk_offsets)

    def _visit_stss(self, head: BoxHead, stss: SyncSampleBox) -> None:
        track = self._current_track("stss")
        if track is not None:
            track.sync_samples.extend(stss.sample_numbers)

    def _visit_mdat(self, head: BoxHead, mdat: MediaDataBox) -> None:
        self._chunks.append(
            (head.offset + head.boxheadsize, head.boxsize - head.boxheadsize)
        )

    # whole-file checks

    def _check_file(self) -> None:
        if len(self._movies) != 1:
            self._error(f"#moov={len(self._movies)}")
        self._check_chunks()
        self._check_sync_samples()
        for track in self._tracks:
            self._check_timing(track)

    @staticmethod
    def _track_chunks(track: _Track) -> list[tuple[int, int]]:
        sizes: Iterator[int] = iter(track.sample_sizes)
        offsets: Iterator[int] = iter(track.chunk_offsets)

        def take(count: int) -> int:
            taken = list(islice(sizes, count))
            if len(taken) != count:
                raise _TableMismatch(
                    "stsz holds fewer samples than stsc assigns to chunks"
                )
            return sum(taken)

        chunks: list[tuple[int, int]] = []
        chunk = 1
        samples_per_chunk = 1
        for entry in track.sample_to_chunks:
            while chunk < entry.first_chunk:
                offset = next(offsets, None)
                if offset is None:
                    raise _TableMismatch(
                        "stsc refers to more chunks than stco(co64) holds"
                    )
                chunks.append((offset, take(samples_per_chunk)))
                chunk += 1
            samples_per_chunk = entry.samples_per_chunk

        for offset in offsets:
            chunks.append((offset, take(samples_per_chunk)))

        if next(sizes, None) is not None:
            raise _TableMismatch("stsz holds more samples than the chunks take")
        return chunks

    def _check_chunks(self) -> None:
        by_end: dict[int, tuple[int, int]] = {}

        for track in self._tracks:
            if not track.sample_to_chunks:
                self._error("stsc is empty")
            if not track.chunk_offsets:
                self._error("stco(co64) is empty")
            if not track.sample_sizes:
                self._error("stsz is empty")
            if not (track.sample_to_chunks and track.chunk_offsets and track.sample_sizes):
                continue

            try:
                chunks = self._track_chunks(track)
            except _TableMismatch as exc:
                self._error(str(exc))
                continue

            for offset, size in chunks:
                if size == 0:
                    self._error(f"chunk at offset {offset} is empty")
                previous = by_end.pop(offset, None)
                if previous is not None:
                    offset, size = previous[0], size + previous[1]
                end = offset + size

                later = [key for key in by_end if key > end]
                if later:
                    key = min(later)
                    next_start, next_size = by_end[key]
                    if next_start == end:
                        by_end[key] = (offset, next_size + size)
                        continue
                    if next_start < end:
                        self._error(
                            f"chunk ({offset},{size}) overlaps chunk ({next_start},{next_size})"
                        )

                by_end[end] = (offset, size)

        merged = [by_end[key] for key in sorted(by_end)]
        if merged != self._chunks:
            self._error(
                f"mdat{_format_pairs(self._chunks)} != chunks{_format_pairs(merged)}"
            )

    def _check_sync_samples(self) -> None:
        for track in self._tracks:
            if track.track_type == HandlerBox.VIDEO:
                if not track.sync_samples:
                    self._error("stss box missing in a video track")
            elif track.sync_samples:
                self._error("stss box in a non-video track")

    def _check_timing(self, track: _Track) -> None:
        if not track.time_to_samples:
            self._error("stts is empty")

        sample_times: list[int] = []
        sample_time = 0
        for entry in track.time_to_samples:
            for _ in range(entry.sample_count):
                sample_times.append(sample_time)
                sample_time += entry.sample_delta

        if len(sample_times) != len(track.sample_sizes):
            self._error(
                f"SUM(stts.sample_count) {len(sample_times)}"
                f" != COUNT(stsz.sample_size) {len(track.sample_sizes)}"
            )

        if not track.mdhd:
            self._error("stts has no mdhd")
            return

        mdhd = track.mdhd[-1]
        if mdhd.duration != sample_time:
            self._error(
                f"mdhd.duration {mdhd.duration}(={_seconds(mdhd.duration, mdhd.timescale):g}s)"
                f" != SUM(stts.delta) {sample_time}(={_seconds(sample_time, mdhd.timescale):g}s)"
            )

        if track.track_type != HandlerBox.VIDEO and track.composition_offsets:
            self._error("ctts box in a non-video track")

        if track.composition_offsets:
            self._check_composition(track, sample_times)

    def _check_composition(self, track: _Track, sample_times: list[int]) -> None:
        composition_offsets = [
            entry.sample_offset
            for entry in track.composition_offsets
            for _ in range(entry.sample_count)
        ]

        if len(sample_times) != len(composition_offsets):
            self._error(
                f"SUM(stts.sample_count) {len(sample_times)}"
                f" != SUM(ctts.sample_count) {len(composition_offsets)}"
            )

        limit = min(len(sample_times), len(composition_offsets))
        gops: list[tuple[int, int]] = []
        index = 1
        for boundary in [*track.sync_samples, len(track.sample_sizes) + 1]:
            times: list[int] = []
            while index < boundary and index < limit:
                times.append(sample_times[index] + composition_offsets[index])
                index += 1
            if times:
                gops.append((min(times), max(times)))

        current = 0
        for first, last in gops:
            if first <= current:
                self._error(f"GOP boundary violation: {_format_pairs(gops)}")
                break
            current = last


def validate(box: Box) -> list[ValidationIssue]:
    """Check a box tree and return every problem found, in the order found."""
    visitor = ValidationVisitor()
    box.accept(visitor)
    return visitor.issues