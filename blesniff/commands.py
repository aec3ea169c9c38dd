# Written by Sultan Qasim Khan
# Copyright (c) 2024, NCC Group plc
# Released as open source under GPLv3

from struct import pack
from .constants import HEADER_LENGTH, PROTOVER_V1, REQ_SCAN_CONT, SET_TEMPORARY_KEY
from .slip import slip_encode

def make_command(cmd_id, payload, packet_counter):
    hdr = pack("<BBBHB", HEADER_LENGTH, len(payload) & 0xFF, PROTOVER_V1,
               packet_counter & 0xFFFF, cmd_id)
    return slip_encode(hdr + bytes(payload))

# Tell the sniffer to start scanning
def make_scan_cmd(find_scan_rsp=False, find_aux=False, scan_coded=False, packet_counter=0):
    flags = int(bool(find_scan_rsp)) | (int(bool(find_aux)) << 1) | (int(bool(scan_coded)) << 2)
    return make_command(REQ_SCAN_CONT, bytes([flags]), packet_counter)

# The sniffer needs its temporary key cleared before it decodes advertisements,
# so this is normally sent with tk=0 right after the scan command
def make_temporary_key_cmd(tk=0, packet_counter=0):
    return make_command(SET_TEMPORARY_KEY, bytes([tk & 0xFF] * 16), packet_counter)

class CommandEncoder:
    """
    Builds outgoing command frames, numbering them with a 16 bit counter
    that wraps around.
    """

    def __init__(self, packet_counter=0):
        self.packet_counter = packet_counter

    def _next_counter(self):
        ctr = self.packet_counter
        self.packet_counter = (self.packet_counter + 1) & 0xFFFF
        return ctr

    def command(self, cmd_id, payload=b''):
        return make_command(cmd_id, payload, self._next_counter())

    def scan(self, find_scan_rsp=False, find_aux=False, scan_coded=False):
        return make_scan_cmd(find_scan_rsp, find_aux, scan_coded, self._next_counter())

    def temporary_key(self, tk=0):
        return make_temporary_key_cmd(tk, self._next_counter())
