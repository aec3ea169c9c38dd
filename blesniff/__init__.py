__version__ = "1.1.0"

__all__ = [
    "advdata",
    "commands",
    "config",
    "constants",
    "errors",
    "ingest",
    "packet_decoder",
    "slip",
    "sniffer_hw"
]
