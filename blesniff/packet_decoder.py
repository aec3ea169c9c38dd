# Written by Sultan Qasim Khan
# Copyright (c) 2024, NCC Group plc
# Released as open source under GPLv3

import logging
from struct import unpack
from .constants import (HEADER_LENGTH, EVENT_PACKET_ADV_PDU, EVENT_PACKET_DATA_PDU,
                        AdvPduType, AuxType, PhyMode, SCAN_REQ_PAYLOAD_LENGTH)
from .errors import SnifferPacketError
from .advdata.decoder import decode_adv_data
from .advdata.ad_types import (FlagsRecord, CompleteLocalNameRecord, TXPowerLevelRecord,
                               ManufacturerSpecificDataRecord)

_logger = logging.getLogger(__name__)

# mac is expected in display order (most significant byte first)
def str_mac(mac):
    return ":".join(["%02X" % b for b in mac])

def hexline(s):
    return ' '.join([f'{c:02x}' for c in s])

def _str_phy(phy):
    try:
        return PhyMode(phy).name[4:]
    except ValueError:
        return "Invalid%d" % phy

class FrameReader:
    """
    Cursor over one unescaped sniffer frame.

    Every read names the field being read so a short frame reports where it
    ended. Reads past the end raise SnifferPacketError.
    """

    def __init__(self, frame):
        self.frame = bytes(frame)
        self.pos = 0

    def remaining(self):
        return len(self.frame) - self.pos

    def take(self, n, field):
        if n > self.remaining():
            raise SnifferPacketError("Frame truncated in %s at offset %d (need %d, have %d)" % (
                field, self.pos, n, self.remaining()))
        chunk = self.frame[self.pos:self.pos+n]
        self.pos += n
        return chunk

    def skip(self, n, field):
        self.take(n, field)

    def u8(self, field):
        return self.take(1, field)[0]

    def u16(self, field):
        return unpack("<H", self.take(2, field))[0]

    def u32(self, field):
        return unpack("<L", self.take(4, field))[0]

    # MAC addresses are sent least significant byte first
    def mac(self, field):
        return bytes(reversed(self.take(6, field)))

class AdvPduMeta:
    def __init__(self, flags):
        self.aux_type = (flags >> 1) & 0x3
        self.address_resolved = bool(flags & 0x8)

    def __repr__(self):
        return "%s(aux_type=%s, address_resolved=%s)" % (type(self).__name__,
                AuxType(self.aux_type).name, self.address_resolved)

class DataPduMeta:
    def __init__(self, flags):
        self.direction_to_slave = bool(flags & 0x2)
        self.encrypted = bool(flags & 0x4)
        self.mic_ok = bool(flags & 0x8)

    def __repr__(self):
        return "%s(direction_to_slave=%s, encrypted=%s, mic_ok=%s)" % (type(self).__name__,
                self.direction_to_slave, self.encrypted, self.mic_ok)

class PacketHeader:
    def __init__(self):
        self.crc_ok = False
        self.phy = PhyMode.PHY_1M
        self.channel_index = 0
        self.rssi = 0
        self.event_counter = 0
        self.delta_time_us = 0
        # AdvPduMeta, DataPduMeta or None, chosen by packet id
        self.pdu_meta = None

    def decode(self, reader: FrameReader, packet_id):
        reader.skip(1, "radio metadata length")
        flags = reader.u8("radio metadata flags")
        self.crc_ok = bool(flags & 0x1)
        self.phy = (flags >> 4) & 0x7
        if packet_id == EVENT_PACKET_DATA_PDU:
            self.pdu_meta = DataPduMeta(flags)
        elif packet_id == EVENT_PACKET_ADV_PDU:
            self.pdu_meta = AdvPduMeta(flags)
        self.channel_index = reader.u8("channel")
        # firmware sends the magnitude
        self.rssi = -reader.u8("RSSI")
        self.event_counter = reader.u16("event counter")
        self.delta_time_us = reader.u32("time delta")

    @property
    def adv_meta(self):
        return self.pdu_meta if isinstance(self.pdu_meta, AdvPduMeta) else None

    @property
    def data_meta(self):
        return self.pdu_meta if isinstance(self.pdu_meta, DataPduMeta) else None

    def __str__(self):
        return "CRC: %s  PHY: %s  Channel: %2i  RSSI: %4i  Event: %d  Delta: %d us" % (
            "OK" if self.crc_ok else "Invalid", _str_phy(self.phy), self.channel_index,
            self.rssi, self.event_counter, self.delta_time_us)

class NonConnIndMessage:
    pdutype = "ADV_NONCONN_IND"

    def __init__(self, advertising_mac=bytes(6)):
        self.advertising_mac = advertising_mac
        self.advertising_types = ()
        self.records = ()
        self.flags = None
        self.complete_local_name = None
        self.tx_power_level = None
        self.manufacturer_data = None

    @staticmethod
    def decode(reader: FrameReader, payload_len):
        msg = NonConnIndMessage(reader.mac("AdvA"))
        ad_data = reader.take(max(payload_len - 6, 0), "advertising data")
        types, records = decode_adv_data(ad_data)
        msg.advertising_types = tuple(types)
        msg.records = tuple(records)

        # when a type repeats, the last well formed structure wins
        for r in records:
            if r.malformed:
                continue
            if isinstance(r, FlagsRecord):
                msg.flags = r
            elif isinstance(r, CompleteLocalNameRecord):
                msg.complete_local_name = r.name
            elif isinstance(r, TXPowerLevelRecord):
                msg.tx_power_level = r.power
            elif isinstance(r, ManufacturerSpecificDataRecord):
                msg.manufacturer_data = r
        return msg

    def str_lines(self):
        lines = ["AdvA: %s" % str_mac(self.advertising_mac)]
        lines.append("AD Types: %s" % " ".join(["0x%02X" % t for t in self.advertising_types]))
        for r in self.records:
            lines.append(str(r))
        return lines

    def __repr__(self):
        return "%s(AdvA=%s, types=%s, name=%s)" % (type(self).__name__,
                str_mac(self.advertising_mac), list(self.advertising_types),
                repr(self.complete_local_name))

class ScanReqMessage:
    pdutype = "SCAN_REQ"

    def __init__(self, scanning_mac=bytes(6), advertising_mac=bytes(6)):
        self.scanning_mac = scanning_mac
        self.advertising_mac = advertising_mac

    @staticmethod
    def decode(reader: FrameReader):
        scan_a = reader.mac("ScanA")
        adv_a = reader.mac("AdvA")
        return ScanReqMessage(scan_a, adv_a)

    def str_lines(self):
        return ["ScanA: %s AdvA: %s" % (str_mac(self.scanning_mac), str_mac(self.advertising_mac))]

    def __repr__(self):
        return "%s(ScanA=%s, AdvA=%s)" % (type(self).__name__,
                str_mac(self.scanning_mac), str_mac(self.advertising_mac))

class LinkLayerData:
    def __init__(self):
        self.access_address = 0
        self.pdu_type = 0
        self.channel_select = 0
        self.tx_address_public = False
        self.rx_address_public = False
        self.payload_length = 0
        # NonConnIndMessage, ScanReqMessage or None, chosen by PDU type
        self.payload = None

    def decode(self, reader: FrameReader):
        self.access_address = reader.u32("access address")
        hdr = reader.u8("link layer header")
        self.pdu_type = hdr & 0xF
        self.channel_select = (hdr >> 5) & 1
        self.tx_address_public = not (hdr & 0x40)
        self.rx_address_public = not (hdr & 0x80)
        self.payload_length = reader.u8("link layer length")

        # raw UART frames carry one extra byte here that Wireshark doesn't show
        reader.skip(1, "link layer padding")

        if self.pdu_type == AdvPduType.SCAN_REQ:
            if self.payload_length != SCAN_REQ_PAYLOAD_LENGTH:
                raise SnifferPacketError("SCAN_REQ payload length %d, expected %d" % (
                    self.payload_length, SCAN_REQ_PAYLOAD_LENGTH))
            self.payload = ScanReqMessage.decode(reader)
        elif self.pdu_type == AdvPduType.ADV_NONCONN_IND:
            self.payload = NonConnIndMessage.decode(reader, self.payload_length)
        else:
            reader.skip(self.payload_length, "link layer payload")

    @property
    def pdutype(self):
        try:
            return AdvPduType(self.pdu_type).name
        except ValueError:
            return "RFU"

    @property
    def non_conn_ind(self):
        return self.payload if isinstance(self.payload, NonConnIndMessage) else None

    @property
    def scan_req(self):
        return self.payload if isinstance(self.payload, ScanReqMessage) else None

    def str_lines(self):
        lines = ["AA: 0x%08X  PDU Type: %s  ChSel: %i  TxAdd: %s  RxAdd: %s  Length: %i" % (
            self.access_address, self.pdutype, self.channel_select,
            "Public" if self.tx_address_public else "Random",
            "Public" if self.rx_address_public else "Random",
            self.payload_length)]
        if self.payload is not None:
            lines.extend(self.payload.str_lines())
        return lines

class Packet:
    def __init__(self):
        self.valid = False
        self.protocol_version = 0
        self.packet_counter = 0
        self.packet_id = 0
        self.header = PacketHeader()
        self.ll_data = LinkLayerData()
        # reason the frame was rejected, when valid is False
        self.error = None

    def decode(self, frame):
        reader = FrameReader(frame)
        hdr_len = reader.u8("header length")
        if hdr_len != HEADER_LENGTH:
            raise SnifferPacketError("Header length %d, expected %d" % (hdr_len, HEADER_LENGTH))
        reader.skip(1, "payload length")
        self.protocol_version = reader.u8("protocol version")
        self.packet_counter = reader.u16("packet counter")
        self.packet_id = reader.u8("packet id")
        self.header.decode(reader, self.packet_id)
        self.ll_data.decode(reader)
        # anything left over is the over-the-air CRC
        self.valid = True

    # strict decode, raises SnifferPacketError
    @staticmethod
    def from_frame(frame):
        pkt = Packet()
        pkt.decode(frame)
        return pkt

    def __repr__(self):
        return "%s(valid=%s, version=%d, counter=%d, id=0x%02X, pdu=%s)" % (
                type(self).__name__, self.valid, self.protocol_version,
                self.packet_counter, self.packet_id, self.ll_data.pdutype)

    def __str__(self):
        if not self.valid:
            return "INVALID: %s" % self.error
        lines = ["Counter: %5d  ID: 0x%02X  %s" % (self.packet_counter, self.packet_id,
                                                 self.header)]
        lines.extend(self.ll_data.str_lines())
        return "\n".join(lines)

def decode_packet(frame, logger=None):
    logger = logger if logger else _logger
    pkt = Packet()
    try:
        pkt.decode(frame)
    except SnifferPacketError as e:
        pkt.error = str(e)
        logger.debug("Discarding frame: %s", e)
        logger.debug("Frame: %s", hexline(frame))
    return pkt
