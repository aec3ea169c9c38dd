"""Shared pytest fixtures for blesniff tests."""

import time
from struct import pack
import pytest

from blesniff.constants import EVENT_PACKET_ADV_PDU, AdvPduType


def _build_frame(pdu_type=AdvPduType.ADV_NONCONN_IND, ll_payload=b'', ll_len=None,
                 packet_id=EVENT_PACKET_ADV_PDU, version=3, counter=0, flags=0x01,
                 channel=37, rssi_mag=60, event=0, delta=0, aa=0x8E89BED6,
                 chsel=0, tx_random=False, rx_random=False, padding=0x00,
                 trailer=b'\x11\x22\x33', header_len=6):
    """Build an unescaped sniffer frame as the firmware sends it."""
    if ll_len is None:
        ll_len = len(ll_payload)
    ll_hdr = pdu_type | (chsel << 5) | (0x40 if tx_random else 0) | (0x80 if rx_random else 0)
    radio = pack("<BBBBHL", 10, flags, channel, rssi_mag, event, delta)
    ll = pack("<LBBB", aa, ll_hdr, ll_len, padding) + ll_payload + trailer
    payload = radio + ll
    hdr = pack("<BBBHB", header_len, len(payload) & 0xFF, version, counter, packet_id)
    return hdr + payload


def _ad(ad_type, value):
    """One AD structure."""
    return bytes([len(value) + 1, ad_type]) + bytes(value)


class FakeSerial:
    """In-memory stand in for serial.Serial.

    `chunks` are returned by successive reads; an exception instance in the
    list is raised instead. `on_read` is called with the read count before
    each read. Once exhausted, reads return b'' after a short sleep, like a
    port timing out.
    """

    def __init__(self, chunks=(), on_read=None):
        self.chunks = list(chunks)
        self.on_read = on_read
        self.reads = 0
        self.written = []
        self.closed = False

    def read(self, size=1):
        self.reads += 1
        if self.on_read:
            self.on_read(self.reads)
        if self.chunks:
            item = self.chunks.pop(0)
            if isinstance(item, BaseException):
                raise item
            return item
        time.sleep(0.002)
        return b''

    def write(self, data):
        self.written.append(bytes(data))
        return len(data)

    def close(self):
        self.closed = True


@pytest.fixture
def build_frame():
    """Builder for raw (unescaped) sniffer frames."""
    return _build_frame


@pytest.fixture
def ad():
    """Builder for AD structures."""
    return _ad


@pytest.fixture
def fake_serial_cls():
    return FakeSerial


@pytest.fixture
def nonconn_payload(ad):
    """ADV_NONCONN_IND payload: AdvA (over the air order) + flags, name, tx power, MSD."""
    adv_a = bytes([0x11, 0x22, 0x33, 0x44, 0x55, 0x66])
    ad_data = (ad(0x01, [0x06]) + ad(0x09, b'Thermo') + ad(0x0A, [0xF4]) +
               ad(0xFF, [0x4C, 0x00, 0x02, 0x15]))
    return adv_a + ad_data
