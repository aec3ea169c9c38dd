# Written by Sultan Qasim Khan
# Copyright (c) 2024, NCC Group plc
# Released as open source under GPLv3

from enum import IntEnum

# SLIP framing bytes; an escaped byte is sent as ESC, (value + 1)
SLIP_START = 0xAB
SLIP_END = 0xBC
SLIP_ESC = 0xCD
SLIP_ESC_START = SLIP_START + 1
SLIP_ESC_END = SLIP_END + 1
SLIP_ESC_ESC = SLIP_ESC + 1

PROTOVER_V1 = 1
HEADER_LENGTH = 6

DEFAULT_BAUDRATE = 460800

# longest unescaped frame the host will buffer: 23 byte prefix, 255 byte payload, CRC
MAX_FRAME_LENGTH = 512

# UART protocol packet ids
REQ_FOLLOW = 0x00
EVENT_FOLLOW = 0x01
EVENT_PACKET_ADV_PDU = 0x02
EVENT_CONNECT = 0x05
EVENT_PACKET_DATA_PDU = 0x06
REQ_SCAN_CONT = 0x07
EVENT_DISCONNECT = 0x09
SET_TEMPORARY_KEY = 0x0C
PING_REQ = 0x0D
PING_RESP = 0x0E
SWITCH_BAUD_RATE_REQ = 0x13
SWITCH_BAUD_RATE_RESP = 0x14
SET_ADV_CHANNEL_HOP_SEQ = 0x17
SET_PRIVATE_KEY = 0x18
SET_LEGACY_LONG_TERM_KEY = 0x19
SET_SC_LONG_TERM_KEY = 0x1A
REQ_VERSION = 0x1B
RESP_VERSION = 0x1C
REQ_TIMESTAMP = 0x1D
RESP_TIMESTAMP = 0x1E
SET_IDENTITY_RESOLVING_KEY = 0x1F
GO_IDLE = 0xFE

class PhyMode(IntEnum):
    PHY_1M = 0
    PHY_2M = 1
    PHY_CODED = 2

class AuxType(IntEnum):
    AUX_ADV_IND = 0
    AUX_CHAIN_IND = 1
    AUX_SYNC_IND = 2
    AUX_SCAN_RSP = 3

# primary advertising channel PDU types (4 bit field)
class AdvPduType(IntEnum):
    ADV_IND = 0x0
    ADV_DIRECT_IND = 0x1
    ADV_NONCONN_IND = 0x2
    SCAN_REQ = 0x3
    SCAN_RSP = 0x4
    CONNECT_IND = 0x5
    ADV_SCAN_IND = 0x6
    ADV_EXT_IND = 0x7

# ScanA + AdvA, no extension
SCAN_REQ_PAYLOAD_LENGTH = 12

# AD structure types the decoder interprets
AD_TYPE_FLAGS = 0x01
AD_TYPE_COMPLETE_LOCAL_NAME = 0x09
AD_TYPE_TX_POWER_LEVEL = 0x0A
AD_TYPE_MANUFACTURER_DATA = 0xFF
