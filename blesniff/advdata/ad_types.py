# Written by Sultan Qasim Khan
# Copyright (c) 2024, NCC Group plc
# Released as open source under GPLv3

from struct import unpack
from .constants import ad_types

# This base class should never throw exceptions when called correctly
# Subclasses may throw exceptions in their constructor, but not in string conversion
class AdvDataRecord:
    def __init__(self, data_type: int, data: bytes, malformed=False):
        self.type = data_type
        self.data = data
        self.malformed = malformed

    def str_type(self):
        if self.type in ad_types:
            return ad_types[self.type]
        else:
            return "Unknown Advertising Data Type: 0x%02X" % self.type

    def str_lines(self):
        lines = []
        lines.append(self.str_type())
        if self.malformed:
            lines.append("Malformed")
        lines.append("Length: %d" % len(self.data))
        lines.append("Value: %s" % repr(self.data))
        return lines

    def __repr__(self):
        return "%s(type=0x%02X, data=%s, malformed=%s)" % (type(self).__name__,
                self.type, repr(self.data), self.malformed)

    def __str__(self):
        return "\n    ".join(self.str_lines())

class FlagsRecord(AdvDataRecord):
    def __init__(self, data_type: int, data: bytes):
        super().__init__(data_type, data)
        if len(self.data) < 1:
            raise ValueError("Invalid data length")
        # multi-byte values keep the last byte
        self.flags = self.data[-1]
        self.le_limited_discoverable = bool(self.flags & 0x01)
        self.le_general_discoverable = bool(self.flags & 0x02)
        self.br_edr_not_supported = bool(self.flags & 0x04)
        self.simultaneous_controller = bool(self.flags & 0x08)
        self.simultaneous_host = bool(self.flags & 0x10)

    def str_lines(self):
        return ["%s: 0x%02X" % (self.str_type(), self.flags)]

class LocalNameRecord(AdvDataRecord):
    def __init__(self, data_type: int, data: bytes):
        super().__init__(data_type, data)
        self.name = str(self.data, encoding='utf-8')

    def str_lines(self):
        return ["%s: %s" % (self.str_type(), self.name)]

class CompleteLocalNameRecord(LocalNameRecord):
    pass

class TXPowerLevelRecord(AdvDataRecord):
    def __init__(self, data_type: int, data: bytes):
        super().__init__(data_type, data)
        if len(self.data) < 1:
            raise ValueError("Invalid data length")
        self.power, = unpack('<b', self.data[-1:])

    def str_lines(self):
        return ["%s: %d dBm" % (self.str_type(), self.power)]

class ManufacturerSpecificDataRecord(AdvDataRecord):
    def __init__(self, data_type: int, data: bytes):
        super().__init__(data_type, data)
        if len(self.data) < 1:
            raise ValueError("Invalid data length")
        # a single byte is taken as the low byte of the company id
        self.company, = unpack('<H', self.data[:2].ljust(2, b'\x00'))
        self.company_data = self.data[2:]

    def str_company(self):
        return "0x%04X" % self.company

    def str_lines(self):
        lines = [self.str_type()]
        lines.append("Company: %s" % self.str_company())
        lines.append("Data Length: %d" % len(self.company_data))
        lines.append("Data: %s" % repr(self.company_data))
        return lines
