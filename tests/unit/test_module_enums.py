"""Test model enums and configuration validation."""

import pytest

from marstek_ble.models.config import DispatchConfig, OTAConfig
from marstek_ble.models.enums import DeviceType, FrameFormat, OTAState


class TestDeviceType:
    """Test DeviceType.from_name."""

    @pytest.mark.parametrize("name,expected", [
        ("MST_ACCP_3F2A", DeviceType.BATTERY),
        ("MST_TPM_0001", DeviceType.METER),
        ("MST_OTHER", DeviceType.UNKNOWN),
        ("", DeviceType.UNKNOWN),
        (None, DeviceType.UNKNOWN),
    ])
    def test_from_name(self, name, expected):
        assert DeviceType.from_name(name) == expected


class TestOTAState:
    """Test state classification helpers."""

    def test_terminal_states(self):
        assert OTAState.COMPLETED.is_terminal
        assert OTAState.FAILED.is_terminal
        assert not OTAState.TRANSFERRING_CHUNKS.is_terminal

    def test_active_states(self):
        assert not OTAState.IDLE.is_active
        assert not OTAState.COMPLETED.is_active
        assert OTAState.PREPARING.is_active
        assert OTAState.FINALIZING.is_active


def test_frame_format_values():
    assert FrameFormat.STANDARD == 0
    assert FrameFormat.METER_IP == 1


class TestConfig:
    """Test timing configuration defaults and validation."""

    def test_ota_defaults(self):
        config = OTAConfig()
        assert config.activation_timeout == 5.0
        assert config.size_ack_timeout == 2.0
        assert config.chunk_ack_timeout == 1.5
        assert config.finalize_timeout == 3.0
        assert config.chunk_attempts == 3

    def test_dispatch_defaults(self):
        config = DispatchConfig()
        assert config.response_timeout == 3.0
        assert config.stale_after == 2.9
        assert config.max_attempts == 3

    @pytest.mark.parametrize("field", ["chunk_ack_timeout", "chunk_attempts"])
    def test_ota_rejects_non_positive(self, field):
        with pytest.raises(ValueError, match=field):
            OTAConfig(**{field: 0})

    def test_stale_after_bounded_by_timeout(self):
        with pytest.raises(ValueError, match="must not exceed"):
            DispatchConfig(response_timeout=1.0, stale_after=2.0)
