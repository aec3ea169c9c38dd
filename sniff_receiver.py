#!/usr/bin/env python3

# Written by Sultan Qasim Khan
# Copyright (c) 2024, NCC Group plc
# Released as open source under GPLv3

import argparse, sys
from queue import Empty
from serial import Serial, SerialException
from blesniff.config import SnifferConfig, load_config, setup_logging
from blesniff.ingest import IngestWorker
from blesniff.packet_decoder import str_mac
from blesniff.errors import UsageError

def parse_args(argv=None):
    aparse = argparse.ArgumentParser(description="Host-side receiver for nRF BLE sniffer firmware")
    aparse.add_argument("-s", "--serport", default=None, help="Sniffer serial port name")
    aparse.add_argument("-b", "--baudrate", default=None, type=int,
            help="Sniffer serial port baud rate")
    aparse.add_argument("-c", "--config", default=None, help="YAML configuration file")
    aparse.add_argument("-r", "--scanrsp", action="store_true", default=None,
            help="Ask the sniffer to capture scan responses")
    aparse.add_argument("-e", "--extadv", action="store_true", default=None,
            help="Ask the sniffer to follow auxiliary advertising PDUs")
    aparse.add_argument("-l", "--longrange", action="store_true", default=None,
            help="Scan on the long range (coded) PHY")
    aparse.add_argument("-k", "--tk", default=None, type=int,
            help="Temporary key byte sent to the sniffer")
    aparse.add_argument("-u", "--unique", action="store_true",
            help="Only show the first packet from each advertiser MAC")
    aparse.add_argument("-d", "--decode", action="store_true",
            help="Show every decoded field")
    return aparse.parse_args(argv)

def build_config(args):
    cfg = load_config(args.config) if args.config else SnifferConfig()
    cfg.update({
        'serial_port': args.serport,
        'baudrate': args.baudrate,
        'find_scan_rsp': args.scanrsp,
        'find_aux': args.extadv,
        'scan_coded': args.longrange,
        'temporary_key': args.tk
    })
    return cfg

def prompt_serport(baudrate, input_func=input, serial_factory=Serial):
    while True:
        try:
            serport = input_func("Please input serial path (e.g. /dev/ttyUSB0): ").strip()
        except EOFError:
            raise UsageError("No serial port given")
        try:
            serial_factory(serport, baudrate).close()
            return serport
        except (SerialException, OSError) as e:
            print("Error: %s" % e)

def format_packet(pkt):
    msg = pkt.ll_data.non_conn_ind
    if msg is None:
        return None
    line = "MAC: %s" % str_mac(msg.advertising_mac)
    if msg.manufacturer_data is not None:
        line += "\tManufacturer: 0x%04X" % msg.manufacturer_data.company
    elif msg.complete_local_name:
        # keep DeviceName in the same column as when a manufacturer is shown
        line += "\t\t\t"
    if msg.complete_local_name:
        line += "\tDeviceName: %s" % msg.complete_local_name
    return line

def print_packet(pkt, decode=False, seen=None):
    msg = pkt.ll_data.non_conn_ind
    if seen is not None and msg is not None:
        if msg.advertising_mac in seen:
            return
        seen.add(msg.advertising_mac)

    if decode:
        print(pkt, end='\n\n')
    else:
        line = format_packet(pkt)
        if line:
            print(line)

def main(argv=None):
    args = parse_args(argv)
    cfg = build_config(args)
    logger = setup_logging(cfg)

    serport = cfg.serial_port
    if serport is None:
        try:
            serport = prompt_serport(cfg.baudrate)
        except KeyboardInterrupt:
            sys.stderr.write("\r")
            print("blesniff closed")
            return

    worker = IngestWorker(serport, cfg, logger=logger)
    worker.start()
    seen = set() if args.unique else None

    try:
        while True:
            try:
                pkt = worker.packets.get(timeout=cfg.poll_interval)
            except Empty:
                continue
            print_packet(pkt, args.decode, seen)
    except KeyboardInterrupt:
        sys.stderr.write("\r")

    worker.stop()
    worker.close()
    print("blesniff closed")

if __name__ == "__main__":
    try:
        main()
    except UsageError as e:
        print(e, file=sys.stderr)
        sys.exit(1)
