# Written by Sultan Qasim Khan
# Copyright (c) 2024, NCC Group plc
# Released as open source under GPLv3

# raised when a sniffer frame fails a structural check
# this is not for malformed advertising data inside a valid frame
class SnifferPacketError(ValueError):
    pass

# raised when blesniff APIs or utilities are invoked incorrectly
class UsageError(Exception):
    pass

# raised when the configuration file can't be loaded or has bad values
class ConfigError(UsageError):
    pass
