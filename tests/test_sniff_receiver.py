"""Tests for the sniff_receiver command line consumer."""

import pytest
from serial import SerialException

import sniff_receiver
from blesniff.constants import AdvPduType
from blesniff.errors import UsageError
from blesniff.packet_decoder import decode_packet


@pytest.fixture
def nonconn_packet(build_frame, nonconn_payload):
    return decode_packet(build_frame(ll_payload=nonconn_payload))


@pytest.mark.unit
class TestFormatPacket:

    def test_full_line(self, nonconn_packet):
        assert sniff_receiver.format_packet(nonconn_packet) == \
            "MAC: 66:55:44:33:22:11\tManufacturer: 0x004C\tDeviceName: Thermo"

    def test_mac_only(self, build_frame, ad):
        payload = bytes([1, 2, 3, 4, 5, 6]) + ad(0x01, [0x06])
        pkt = decode_packet(build_frame(ll_payload=payload))
        assert sniff_receiver.format_packet(pkt) == "MAC: 06:05:04:03:02:01"

    def test_name_without_manufacturer_keeps_column(self, build_frame, ad):
        payload = bytes([1, 2, 3, 4, 5, 6]) + ad(0x09, b'Lamp')
        pkt = decode_packet(build_frame(ll_payload=payload))
        assert sniff_receiver.format_packet(pkt) == \
            "MAC: 06:05:04:03:02:01\t\t\t\tDeviceName: Lamp"

    def test_other_pdu_types(self, build_frame):
        payload = bytes(range(12))
        pkt = decode_packet(build_frame(pdu_type=AdvPduType.SCAN_REQ, ll_payload=payload))
        assert pkt.valid
        assert sniff_receiver.format_packet(pkt) is None


@pytest.mark.unit
class TestPrintPacket:

    def test_unique(self, nonconn_packet, capsys):
        seen = set()
        sniff_receiver.print_packet(nonconn_packet, seen=seen)
        sniff_receiver.print_packet(nonconn_packet, seen=seen)
        out = capsys.readouterr().out
        assert out.count("MAC: 66:55:44:33:22:11") == 1

    def test_repeats_without_unique(self, nonconn_packet, capsys):
        sniff_receiver.print_packet(nonconn_packet)
        sniff_receiver.print_packet(nonconn_packet)
        assert capsys.readouterr().out.count("MAC:") == 2

    def test_decode(self, nonconn_packet, capsys):
        sniff_receiver.print_packet(nonconn_packet, decode=True)
        assert capsys.readouterr().out == str(nonconn_packet) + "\n\n"


@pytest.mark.unit
class TestPromptSerport:

    def test_retries_until_port_opens(self, mocker, capsys):
        answers = iter(["/dev/bad\n", " /dev/ttyUSB0 "])
        serial_factory = mocker.Mock(side_effect=[SerialException("no such port"),
                                                  mocker.Mock()])
        port = sniff_receiver.prompt_serport(115200, input_func=lambda prompt: next(answers),
                                             serial_factory=serial_factory)
        assert port == "/dev/ttyUSB0"
        assert serial_factory.call_args_list == [mocker.call("/dev/bad", 115200),
                                                 mocker.call("/dev/ttyUSB0", 115200)]
        assert "no such port" in capsys.readouterr().out

    def test_eof(self, mocker):
        def no_input(prompt):
            raise EOFError
        with pytest.raises(UsageError):
            sniff_receiver.prompt_serport(115200, input_func=no_input,
                                          serial_factory=mocker.Mock())


@pytest.mark.unit
class TestBuildConfig:

    def test_defaults(self):
        cfg = sniff_receiver.build_config(sniff_receiver.parse_args([]))
        assert cfg.serial_port is None
        assert cfg.find_aux is False

    def test_args_override_file(self, tmp_path):
        path = tmp_path / "config.yml"
        path.write_text("serial_port: /dev/ttyACM0\nbaudrate: 115200\ntemporary_key: 3\n")
        args = sniff_receiver.parse_args(["-c", str(path), "-s", "/dev/ttyUSB2", "-e", "-k", "7"])
        cfg = sniff_receiver.build_config(args)
        assert cfg.serial_port == "/dev/ttyUSB2"
        assert cfg.baudrate == 115200
        assert cfg.find_aux is True
        assert cfg.find_scan_rsp is False
        assert cfg.temporary_key == 7

    def test_bad_tk(self):
        with pytest.raises(UsageError):
            sniff_receiver.build_config(sniff_receiver.parse_args(["-k", "256"]))


@pytest.mark.unit
def test_interrupt_at_port_prompt(monkeypatch, mocker, capsys):
    monkeypatch.delenv("BLESNIFF_LOG_FILE", raising=False)
    monkeypatch.delenv("BLESNIFF_LOG_LEVEL", raising=False)
    mocker.patch("blesniff.config.logging.basicConfig")
    mocker.patch("sniff_receiver.prompt_serport", side_effect=KeyboardInterrupt)
    worker_cls = mocker.patch("sniff_receiver.IngestWorker")
    sniff_receiver.main([])
    worker_cls.assert_not_called()
    assert "blesniff closed" in capsys.readouterr().out
