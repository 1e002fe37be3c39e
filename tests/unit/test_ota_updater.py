"""Test the firmware update exchange against a scripted device."""

import pytest
import pytest_asyncio

from marstek_ble.engine.core import ProtocolEngine
from marstek_ble.exceptions import BLEConnectionError
from marstek_ble.models.enums import OTAState
from marstek_ble.protocol.commands import OTACommand, build_ota_activate_command

FIRMWARE = bytes((i * 31 + 7) & 0xFF for i in range(300))


@pytest_asyncio.fixture
async def engine(transport, fast_ota_config, fast_dispatch_config):
    engine = ProtocolEngine(transport, ota_config=fast_ota_config, dispatch_config=fast_dispatch_config)
    await engine.start()
    yield engine
    await engine.stop()


def _written_commands(transport):
    return [frame[3] for frame in transport.written]


class TestSuccessfulUpdate:
    """Test complete updates."""

    @pytest.mark.asyncio
    async def test_happy_path(self, engine, transport, fake_device):
        progress = []
        result = await engine.update_firmware(FIRMWARE, progress.append)

        assert result.success
        assert result.state == OTAState.COMPLETED
        assert result.reason is None
        assert result.analysis.size == 300
        assert bytes(fake_device.received) == FIRMWARE

        assert transport.written[0] == build_ota_activate_command()
        assert _written_commands(transport)[1:] == [
            OTACommand.SIZE, OTACommand.CHUNK, OTACommand.CHUNK, OTACommand.CHUNK, OTACommand.FINALIZE,
        ]
        assert [p.chunk_index for p in progress] == [1, 2, 3]
        assert [p.percent for p in progress] == [33, 67, 100]
        assert [p.offset for p in progress] == [0, 128, 256]
        assert progress[-1].total_chunks == 3
        assert not engine.ota_in_progress

    @pytest.mark.asyncio
    async def test_progress_percent_rounds_half_up(self, engine):
        progress = []
        await engine.update_firmware(b'\x11' * (8 * 128), progress.append)

        assert [p.percent for p in progress] == [13, 25, 38, 50, 63, 75, 88, 100]

    @pytest.mark.asyncio
    async def test_size_frame_carries_checksum(self, engine, transport):
        await engine.update_firmware(bytes([1, 2, 3]))

        size_frame = transport.written[1]
        assert size_frame[5:9] == (3).to_bytes(4, 'little')
        assert size_frame[9:13] == (0xFFFFFFF9).to_bytes(4, 'little')

    @pytest.mark.asyncio
    async def test_lost_chunk_acks_are_retried(self, engine, fake_device):
        fake_device.drop_chunk_attempts = {128: 2}

        result = await engine.update_firmware(FIRMWARE)

        assert result.success
        assert fake_device.chunk_attempts[128] == 3
        assert bytes(fake_device.received) == FIRMWARE

    @pytest.mark.asyncio
    async def test_checksum_echo_mismatch_is_advisory(self, engine, fake_device):
        fake_device.echo_checksum = 0x12345678
        assert (await engine.update_firmware(FIRMWARE)).success

    @pytest.mark.asyncio
    async def test_offset_echo_mismatch_is_advisory(self, engine, fake_device):
        fake_device.offset_skew = 4
        assert (await engine.update_firmware(FIRMWARE)).success

    @pytest.mark.asyncio
    async def test_update_can_run_again(self, engine, fake_device):
        fake_device.activation_status = 0x00
        assert not (await engine.update_firmware(FIRMWARE)).success

        fake_device.activation_status = 0x01
        fake_device.received.clear()
        assert (await engine.update_firmware(FIRMWARE)).success


class TestFailedUpdate:
    """Test failure reasons and the state they were raised in."""

    @pytest.mark.asyncio
    async def test_chunk_exhausts_attempts(self, engine, transport, fake_device):
        fake_device.drop_chunk_attempts = {128: 3}

        result = await engine.update_firmware(FIRMWARE)

        assert not result.success
        assert result.state == OTAState.FAILED
        assert result.failed_state == OTAState.TRANSFERRING_CHUNKS
        assert result.reason == "Failed to send chunk 2 after 3 attempts: timeout"
        assert OTACommand.FINALIZE not in _written_commands(transport)

    @pytest.mark.asyncio
    async def test_activation_rejected(self, engine, transport, fake_device):
        fake_device.activation_status = 0x00

        result = await engine.update_firmware(FIRMWARE)

        assert result.failed_state == OTAState.ACTIVATING
        assert result.reason == "Failed to activate upgrade mode: activation rejected - status: 0x00"
        assert len(transport.written) == 1

    @pytest.mark.asyncio
    async def test_activation_timeout(self, engine, fake_device):
        fake_device.activation_status = None

        result = await engine.update_firmware(FIRMWARE)

        assert result.failed_state == OTAState.ACTIVATING
        assert result.reason == "Failed to activate upgrade mode: timeout - no response received"

    @pytest.mark.asyncio
    async def test_unexpected_size_ack(self, engine, fake_device):
        fake_device.size_reply_cmd = OTACommand.FINALIZE

        result = await engine.update_firmware(FIRMWARE)

        assert result.failed_state == OTAState.SENDING_SIZE
        assert result.reason == "Size ACK failed: unexpected cmd: expected 0x50, got 0x52"

    @pytest.mark.asyncio
    async def test_finalize_status(self, engine, fake_device):
        fake_device.finalize_status = 0x02

        result = await engine.update_firmware(FIRMWARE)

        assert result.failed_state == OTAState.FINALIZING
        assert result.reason == "OTA finalization failed - status: 0x02"

    @pytest.mark.asyncio
    async def test_finalize_timeout(self, engine, fake_device):
        fake_device.finalize_status = None

        result = await engine.update_firmware(FIRMWARE)

        assert result.failed_state == OTAState.FINALIZING
        assert result.reason == "Finalize ACK failed: timeout"

    @pytest.mark.asyncio
    async def test_not_connected(self, engine, transport):
        transport.connected = False

        result = await engine.update_firmware(FIRMWARE)

        assert result.failed_state == OTAState.PREPARING
        assert result.reason == "Device not connected"
        assert result.analysis is None
        assert transport.written == []

    @pytest.mark.asyncio
    async def test_empty_firmware(self, engine):
        result = await engine.update_firmware(b'')
        assert result.reason == "No firmware data"

    @pytest.mark.asyncio
    async def test_write_failure(self, engine, transport):
        transport.fail_writes = 1

        result = await engine.update_firmware(FIRMWARE)

        assert result.failed_state == OTAState.ACTIVATING
        assert result.reason.startswith("Transport error:")
        assert not engine.activation.armed

    @pytest.mark.asyncio
    async def test_disconnect_during_transfer(self, engine, transport, fake_device):
        """Test a closed channel fails the chunk wait without retrying."""

        def responder(frame):
            replies = fake_device(frame)
            if frame[3] == OTACommand.CHUNK and frame[5:9] == (128).to_bytes(4, 'little'):
                return [None]
            return replies

        transport.responder = responder

        result = await engine.update_firmware(FIRMWARE)

        assert result.failed_state == OTAState.TRANSFERRING_CHUNKS
        assert result.reason == "Failed to send chunk 2: connection closed"
        assert fake_device.chunk_attempts[128] == 1

    @pytest.mark.asyncio
    async def test_write_error_counts_as_chunk_attempt(self, engine, transport, fake_device):
        sent = []

        async def flaky_write(data):
            sent.append(data)
            if len(sent) in (4, 5):
                raise BLEConnectionError("Write failed: busy")
            await real_write(data)

        real_write = transport.write_command
        transport.write_command = flaky_write

        result = await engine.update_firmware(FIRMWARE)

        assert result.success
        assert fake_device.chunk_attempts[128] == 1
