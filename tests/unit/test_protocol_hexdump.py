from marstek_ble.protocol.hexdump import format_bytes, format_hex_dump


def test_format_bytes():
    assert format_bytes(b'\x73\x05\x23\x04\x55') == "0x73 0x05 0x23 0x04 0x55"
    assert format_bytes(b'') == ""


def test_hex_dump_rows():
    dump = format_hex_dump(b'\x73\x05\x23' + b'A' * 17)
    lines = dump.splitlines()

    assert len(lines) == 2
    assert lines[0].startswith("0000: 73 05 23 41")
    assert lines[0].endswith("|s.#AAAAAAAAAAAAA|")
    assert lines[1].startswith("0010: 41 41 41 41")
    assert lines[1].endswith("|AAAA|")
