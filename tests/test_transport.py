#!/usr/bin/env python3
"""Tests for the single exchange Transport against a fake device."""
from unittest.mock import patch

import pytest

from conftest_device import FakeDevice
from miiocli.endpoint import DeviceEndpoint
from miiocli.errors import ConnectError, ProtocolError, ResponseTimeoutError
from miiocli.protocol import encode_packet
from miiocli.rpc import RpcRequest
from miiocli.transport import Transport

OTHER_TOKEN = bytes.fromhex("ffeeddccbbaa99887766554433221100")


@pytest.mark.asyncio
async def test_open_learns_device_id_and_stamp(
    fake_device: FakeDevice, device_endpoint: DeviceEndpoint
) -> None:
    """Test the handshake seeds the session from the hello response."""
    transport = Transport(device_endpoint)
    try:
        session = await transport.open(0.5)
    finally:
        transport.close()

    assert fake_device.hellos == 1
    assert session.device_id == fake_device.device_id
    assert session.stamp == fake_device.stamp
    assert session.sequence == 1


@pytest.mark.asyncio
async def test_open_reuses_existing_session(
    fake_device: FakeDevice, device_endpoint: DeviceEndpoint
) -> None:
    """Test a second open does not handshake again."""
    transport = Transport(device_endpoint)
    try:
        first = await transport.open(0.5)
        second = await transport.open(0.5)
    finally:
        transport.close()

    assert first is second
    assert fake_device.hellos == 1


@pytest.mark.asyncio
async def test_open_timeout_raises_connect_error(
    fake_device: FakeDevice, device_endpoint: DeviceEndpoint
) -> None:
    """Test a silent device fails the handshake with ConnectError."""
    fake_device.silent = True
    transport = Transport(device_endpoint)
    try:
        with pytest.raises(ConnectError, match="No handshake response"):
            await transport.open(0.05)
    finally:
        transport.close()


@pytest.mark.asyncio
async def test_open_malformed_response_raises_connect_error(
    fake_device: FakeDevice, device_endpoint: DeviceEndpoint
) -> None:
    """Test a garbage hello response fails the handshake."""
    fake_device.hello_response = b"garbage"
    transport = Transport(device_endpoint)
    try:
        with pytest.raises(ConnectError, match="Malformed handshake response"):
            await transport.open(0.5)
    finally:
        transport.close()


@pytest.mark.asyncio
async def test_send_echo_round_trip(
    fake_device: FakeDevice, device_endpoint: DeviceEndpoint
) -> None:
    """Test method and params arrive intact and the answer comes back."""
    params = ["power", {"siid": 2, "piid": 1}, 3.5, None]
    transport = Transport(device_endpoint)
    try:
        session = await transport.open(0.5)
        response = await transport.send(session, RpcRequest("get_properties", params), 0.5)
    finally:
        transport.close()

    assert fake_device.requests[0][1] == RpcRequest("get_properties", params)
    assert response.unwrap() == {"method": "get_properties", "params": params}
    assert fake_device.stamps == [fake_device.stamp]


@pytest.mark.asyncio
async def test_sequence_increases_across_calls(
    fake_device: FakeDevice, device_endpoint: DeviceEndpoint
) -> None:
    """Test each successful exchange uses the next sequence number."""
    transport = Transport(device_endpoint)
    try:
        session = await transport.open(0.5)
        for _ in range(3):
            await transport.send(session, RpcRequest("miIO.info"), 0.5)
    finally:
        transport.close()

    assert [request_id for request_id, _ in fake_device.requests] == [1, 2, 3]


@pytest.mark.asyncio
async def test_send_timeout_still_consumes_sequence(
    fake_device: FakeDevice, device_endpoint: DeviceEndpoint
) -> None:
    """Test an unanswered request times out and the next request gets a new id."""
    fake_device.drop_requests = 1
    transport = Transport(device_endpoint)
    try:
        session = await transport.open(0.5)
        with pytest.raises(ResponseTimeoutError, match="No response to miIO.info"):
            await transport.send(session, RpcRequest("miIO.info"), 0.05)
        await transport.send(session, RpcRequest("miIO.info"), 0.5)
    finally:
        transport.close()

    assert [request_id for request_id, _ in fake_device.requests] == [1, 2]
    assert session.sequence == 3


@pytest.mark.asyncio
async def test_send_wrong_token_raises_protocol_error(
    fake_device: FakeDevice, device_endpoint: DeviceEndpoint
) -> None:
    """Test a response signed with another token is never accepted."""
    fake_device.reply_token = OTHER_TOKEN
    transport = Transport(device_endpoint)
    try:
        session = await transport.open(0.5)
        with pytest.raises(ProtocolError, match="Checksum mismatch"):
            await transport.send(session, RpcRequest("miIO.info"), 0.5)
    finally:
        transport.close()


@pytest.mark.asyncio
async def test_send_mismatched_id_raises_protocol_error(
    fake_device: FakeDevice, device_endpoint: DeviceEndpoint
) -> None:
    """Test a response for another sequence number is not matched."""
    fake_device.reply = lambda request_id, request: {"id": request_id + 1, "result": 0}
    transport = Transport(device_endpoint)
    try:
        session = await transport.open(0.5)
        with pytest.raises(ProtocolError, match="does not match"):
            await transport.send(session, RpcRequest("miIO.info"), 0.5)
    finally:
        transport.close()


@pytest.mark.asyncio
async def test_send_device_error_is_response(
    fake_device: FakeDevice, device_endpoint: DeviceEndpoint
) -> None:
    """Test a device error object is returned, not raised."""
    fake_device.reply = lambda request_id, request: {
        "id": request_id,
        "error": {"code": -9999, "message": "user ack timeout"},
    }
    transport = Transport(device_endpoint)
    try:
        session = await transport.open(0.5)
        response = await transport.send(session, RpcRequest("set_power", ["on"]), 0.5)
    finally:
        transport.close()

    assert not response.ok
    assert response.error is not None
    assert response.error.message == "user ack timeout"


@pytest.mark.asyncio
async def test_send_after_close_raises_connect_error(
    fake_device: FakeDevice, device_endpoint: DeviceEndpoint
) -> None:
    """Test a closed transport refuses to send."""
    transport = Transport(device_endpoint)
    session = await transport.open(0.5)
    transport.close()

    with pytest.raises(ConnectError, match="closed"):
        await transport.send(session, RpcRequest("miIO.info"), 0.5)


@pytest.mark.asyncio
async def test_close_is_idempotent(
    fake_device: FakeDevice, device_endpoint: DeviceEndpoint
) -> None:
    """Test close can be called repeatedly and discards the session."""
    transport = Transport(device_endpoint)
    await transport.open(0.5)
    assert not transport.closed

    transport.close()
    transport.close()

    assert transport.closed
    assert transport.session is None


@pytest.mark.asyncio
async def test_send_other_device_id_raises_protocol_error(
    fake_device: FakeDevice, device_endpoint: DeviceEndpoint
) -> None:
    """Test a response from another device id is rejected."""
    fake_device.reply_device_id = 0x0BADF00D
    transport = Transport(device_endpoint)
    try:
        session = await transport.open(0.5)
        with pytest.raises(ProtocolError, match="Response from device"):
            await transport.send(session, RpcRequest("miIO.info"), 0.5)
    finally:
        transport.close()


@pytest.mark.asyncio
async def test_send_discards_packets_queued_before_sending(
    fake_device: FakeDevice, device_endpoint: DeviceEndpoint, token: bytes
) -> None:
    """Test a packet already waiting in the queue is not taken as the answer."""
    transport = Transport(device_endpoint)
    try:
        session = await transport.open(0.5)
        leftover = encode_packet(fake_device.device_id, 0, token, b'{"id":1,"result":"leftover"}')
        transport._protocol.datagram_received(leftover, ("127.0.0.1", fake_device.port))
        response = await transport.send(session, RpcRequest("miIO.info"), 0.5)
    finally:
        transport.close()

    assert response.unwrap() == {"method": "miIO.info", "params": []}


@pytest.mark.asyncio
async def test_send_drops_late_answer_to_earlier_request(
    fake_device: FakeDevice, device_endpoint: DeviceEndpoint
) -> None:
    """Test a late reply to a timed out request does not answer the next one."""
    fake_device.reply_delay = 0.15
    transport = Transport(device_endpoint)
    try:
        session = await transport.open(0.5)
        with pytest.raises(ResponseTimeoutError):
            await transport.send(session, RpcRequest("set_power", ["on"]), 0.05)
        response = await transport.send(session, RpcRequest("get_prop", ["power"]), 0.5)
    finally:
        transport.close()

    assert response.request_id == 2
    assert response.unwrap()["method"] == "get_prop"


@pytest.mark.asyncio
async def test_send_socket_error_raises_connect_error(
    fake_device: FakeDevice, device_endpoint: DeviceEndpoint
) -> None:
    """Test a socket error reported by the event loop surfaces as ConnectError."""
    transport = Transport(device_endpoint)
    try:
        session = await transport.open(0.5)

        def refuse(packet: bytes) -> None:
            transport._protocol.error_received(ConnectionRefusedError("Connection refused"))

        with patch.object(transport, "_sendto", side_effect=refuse):
            with pytest.raises(ConnectError, match="Connection refused"):
                await transport.send(session, RpcRequest("miIO.info"), 0.5)
    finally:
        transport.close()
