# Written by Sultan Qasim Khan
# Copyright (c) 2024, NCC Group plc
# Released as open source under GPLv3

from struct import error as StructError
from ..constants import (AD_TYPE_FLAGS, AD_TYPE_COMPLETE_LOCAL_NAME,
                         AD_TYPE_TX_POWER_LEVEL, AD_TYPE_MANUFACTURER_DATA)
from .ad_types import *

ad_type_classes = {
    AD_TYPE_FLAGS: FlagsRecord,
    AD_TYPE_COMPLETE_LOCAL_NAME: CompleteLocalNameRecord,
    AD_TYPE_TX_POWER_LEVEL: TXPowerLevelRecord,
    AD_TYPE_MANUFACTURER_DATA: ManufacturerSpecificDataRecord
}

def record_from_type_data(data_type: int, data: bytes):
    if data_type in ad_type_classes:
        try:
            return ad_type_classes[data_type](data_type, data)
        except (ValueError, StructError):
            # includes UnicodeDecodeError from name records
            return AdvDataRecord(data_type, data, malformed=True)
    else:
        return AdvDataRecord(data_type, data)

# Walk the AD structures (length, type, value) in an advertising payload.
# Returns the type codes in the order seen, and a record for each structure
# whose value was fully present. Zero length structures are skipped.
def decode_adv_data(data):
    types = []
    records = []
    i = 0

    while i < len(data):
        l = data[i]
        if l == 0:
            i += 1
            continue
        if i + 1 >= len(data):
            break
        t = data[i+1]
        types.append(t)
        d = data[i+2:i+1+l]
        if len(d) == l - 1:
            records.append(record_from_type_data(t, d))
        i += 1+l

    return types, records
