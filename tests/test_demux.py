from __future__ import annotations

import xml.etree.ElementTree as ET
from pathlib import Path

import pytest

from tm_receiver.dto import ArtifactKind, DemuxState, Packet, PacketKind
from tm_receiver.orchestration.demux import Demultiplexer
from tm_receiver.store.catalog import XML_FOOTER, XML_HEADER

from conftest import CATALOG_TERMINATOR, catalog_entry, image_terminator


class RecordingObserver:
    def __init__(self):
        self.seen = []

    def on_archived(self, kind, path):
        self.seen.append((kind, Path(path).name))


def _feed(demux, *frames):
    return [demux.feed(Packet.from_frame(f)) for f in frames]


@pytest.fixture
def demux(cfg, clock):
    d = Demultiplexer(cfg, clock=clock, observer=RecordingObserver())
    d.start()
    yield d
    d.close()


def test_initial_state_depends_on_recovery_mode(cfg, simple_cfg, clock):
    assert Demultiplexer(cfg, clock=clock).state is DemuxState.WRITING_IMAGE
    assert Demultiplexer(simple_cfg, clock=clock).state is DemuxState.AWAITING_FIRST_PACKET


def test_image_fragments_then_terminator(demux, cfg):
    kinds = _feed(demux, b"\xaa" * 100, b"\xbb" * 50)
    assert kinds == [PacketKind.IMAGE_FRAGMENT] * 2
    assert cfg.image_staging_path.stat().st_size == 150
    assert demux.counters.total_bytes_in_current_artifact == 150
    assert demux.counters.packet_index_in_current_artifact == 2

    _feed(demux, image_terminator("foo.png"))

    archived = cfg.archive_dir / "foo.png"
    assert archived.read_bytes() == b"\xaa" * 100 + b"\xbb" * 50
    assert cfg.image_staging_path.stat().st_size == 0
    assert demux.counters.total_bytes_in_current_artifact == 0
    assert demux.counters.packet_index_in_current_artifact == 0
    assert demux.counters.images_archived == 1
    assert demux.state is DemuxState.AWAITING_CATALOG_OR_IMAGE
    assert demux.observer.seen == [(ArtifactKind.IMAGE, "foo.png")]


def test_catalog_round_then_archive_on_next_start(demux, cfg):
    demux.state = DemuxState.AWAITING_CATALOG_OR_IMAGE
    entry = catalog_entry("foo.png")

    kinds = _feed(demux, entry, CATALOG_TERMINATOR)

    assert kinds == [PacketKind.CATALOG_FRAGMENT, PacketKind.CATALOG_TERMINATOR]
    assert cfg.catalog_path.read_bytes() == XML_HEADER + entry + b"\n" + XML_FOOTER
    assert not demux.catalog.is_open
    # recovery variant falls back to image data after a catalog
    assert demux.state is DemuxState.WRITING_IMAGE

    _feed(demux, b"\x01" * 40, image_terminator("bar.png"), catalog_entry("bar.png"))

    archived = cfg.catalog_archive_dir / "imageindex_20140513_165320.xml"
    assert archived.read_bytes() == XML_HEADER + entry + b"\n" + XML_FOOTER
    live = ET.parse(cfg.catalog_path).getroot()
    assert [el.find("NAME").text for el in live] == ["bar.png"]
    assert demux.state is DemuxState.WRITING_CATALOG
    assert demux.catalog.sequence_number == 1
    assert (ArtifactKind.CATALOG, archived.name) in demux.observer.seen


def test_simple_variant_stays_ambiguous_after_catalog(simple_cfg, clock):
    d = Demultiplexer(simple_cfg, clock=clock)
    d.start()
    _feed(d, b"\x00" * 64, image_terminator("a.png"), catalog_entry("a.png"), CATALOG_TERMINATOR)
    assert d.state is DemuxState.AWAITING_CATALOG_OR_IMAGE
    # next fragment is sniffed again
    assert _feed(d, catalog_entry("b.png")) == [PacketKind.CATALOG_FRAGMENT]
    d.close()


def test_ambiguous_state_non_catalog_starts_image(demux, cfg):
    _feed(demux, image_terminator("a.png"))
    assert _feed(demux, b"JFIF" * 10) == [PacketKind.IMAGE_FRAGMENT]
    assert demux.state is DemuxState.WRITING_IMAGE
    assert cfg.image_staging_path.read_bytes() == b"JFIF" * 10


def test_image_bytes_with_catalog_prefix_stay_image_when_committed(demux, cfg):
    payload = b"<ROEIMAGE>" + b"\x00" * 30
    assert _feed(demux, payload) == [PacketKind.IMAGE_FRAGMENT]
    assert not cfg.catalog_path.exists()


def test_back_to_back_image_terminators_archive_empty_image(demux, cfg):
    _feed(demux, b"\x05" * 20, image_terminator("one.png"), image_terminator("two.png"))
    assert (cfg.archive_dir / "one.png").stat().st_size == 20
    assert (cfg.archive_dir / "two.png").stat().st_size == 0
    assert demux.state is DemuxState.AWAITING_CATALOG_OR_IMAGE
    assert demux.counters.images_archived == 2


def test_catalog_terminator_without_catalog_is_ignored(demux, cfg):
    _feed(demux, CATALOG_TERMINATOR, CATALOG_TERMINATOR)
    assert demux.state is DemuxState.WRITING_IMAGE
    assert not cfg.catalog_path.exists()


def test_image_terminator_mid_catalog_closes_catalog(demux, cfg):
    demux.state = DemuxState.AWAITING_CATALOG_OR_IMAGE
    _feed(demux, catalog_entry("x.png"), image_terminator("y.png"))
    assert not demux.catalog.is_open
    ET.parse(cfg.catalog_path)
    assert (cfg.archive_dir / "y.png").exists()
    assert demux.state is DemuxState.AWAITING_CATALOG_OR_IMAGE


def test_start_recovers_catalog_from_previous_run(cfg, clock):
    cfg.catalog_path.parent.mkdir(parents=True, exist_ok=True)
    cfg.catalog_path.write_bytes(XML_HEADER + catalog_entry("old.png") + b"\n" + XML_FOOTER)
    cfg.image_staging_path.write_bytes(b"half an image")

    d = Demultiplexer(cfg, clock=clock)
    recovered = d.start()

    assert recovered is not None and recovered.parent == cfg.catalog_archive_dir
    assert b"old.png" in recovered.read_bytes()
    assert not cfg.catalog_path.exists()
    assert cfg.image_staging_path.stat().st_size == 0
    assert d.counters.catalogs_archived == 1
    d.close()


def test_image_name_with_space_reaches_archive_and_observer(demux, cfg):
    _feed(demux, b"\x09" * 12, image_terminator("img 01.png"))
    assert (cfg.archive_dir / "img 01.png").read_bytes() == b"\x09" * 12
    assert demux.observer.seen == [(ArtifactKind.IMAGE, "img 01.png")]
