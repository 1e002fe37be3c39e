"""Test firmware checksum and classification."""

import pytest

from marstek_ble.models.enums import FirmwareType
from marstek_ble.protocol.firmware import (
    SIGNATURE_OFFSET,
    SMALL_SIZE_WARNING,
    VERY_SMALL_SIZE_WARNING,
    analyze_firmware,
    firmware_checksum,
)

IMAGE_SIZE = 0x50010


def _image_with_window(window: bytes) -> bytes:
    image = bytearray(IMAGE_SIZE)
    image[SIGNATURE_OFFSET:SIGNATURE_OFFSET + len(window)] = window
    return bytes(image)


class TestChecksum:
    """Test ones' complement byte-sum checksum."""

    def test_small_input(self):
        assert firmware_checksum(bytes([1, 2, 3])) == 0xFFFFFFF9

    def test_empty(self):
        assert firmware_checksum(b'') == 0xFFFFFFFF

    def test_sum_plus_checksum_is_all_ones(self):
        data = bytes(range(256)) * 40
        assert (sum(data) + firmware_checksum(data)) & 0xFFFFFFFF == 0xFFFFFFFF


class TestClassification:
    """Test advisory firmware type detection."""

    def test_ems_signature(self):
        result = analyze_firmware(_image_with_window(b'VenusC0000'))
        assert result.firmware_type == FirmwareType.EMS_CONTROL
        assert result.size == IMAGE_SIZE
        assert result.warning is None

    def test_signature_not_at_window_start(self):
        result = analyze_firmware(_image_with_window(b'\x00\x00VenusC\x00\x00'))
        assert result.firmware_type == FirmwareType.EMS_CONTROL

    def test_empty_signature_area(self):
        assert analyze_firmware(_image_with_window(b'\x00' * 10)).firmware_type == \
            FirmwareType.UNKNOWN_EMPTY_SIGNATURE
        assert analyze_firmware(_image_with_window(b'\xFF' * 10)).firmware_type == \
            FirmwareType.UNKNOWN_EMPTY_SIGNATURE

    def test_other_signature_is_bms(self):
        result = analyze_firmware(_image_with_window(b'\x00\x00\x00\x12\xFF'))
        assert result.firmware_type == FirmwareType.BMS

    def test_invalid_utf8_in_window(self):
        result = analyze_firmware(_image_with_window(b'\xC3\x28\xA0\xA1\xE2\x28\xA1\xF0\x28\x8C'))
        assert result.firmware_type == FirmwareType.BMS

    @pytest.mark.parametrize("size,expected,warning", [
        (32768, FirmwareType.BMS_BY_SIZE, None),
        (0x50004, FirmwareType.BMS_BY_SIZE, None),
        (32767, FirmwareType.UNKNOWN_SMALL, SMALL_SIZE_WARNING),
        (1024, FirmwareType.UNKNOWN_SMALL, SMALL_SIZE_WARNING),
        (1023, FirmwareType.UNKNOWN_VERY_SMALL, VERY_SMALL_SIZE_WARNING),
        (3, FirmwareType.UNKNOWN_VERY_SMALL, VERY_SMALL_SIZE_WARNING),
    ])
    def test_classified_by_size(self, size, expected, warning):
        result = analyze_firmware(b'\x01' * size)
        assert result.firmware_type == expected
        assert result.warning == warning

    def test_analysis_checksum(self):
        result = analyze_firmware(bytes([1, 2, 3]))
        assert result.checksum == 0xFFFFFFF9
        assert result.size == 3
