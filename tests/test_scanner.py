"""Tests for the subnet scanner."""

import asyncio

import pytest

from printlink.network import scanner as scanner_module
from printlink.network.scanner import SubnetScanner, probe, validate_prefix
from printlink.types.printers import Endpoint


class _FakeWriter:
    def close(self):
        pass

    async def wait_closed(self):
        pass


def fake_network(open_hosts, slow_hosts=(), tracker=None):
    """Build an open_connection stand-in for a scripted subnet."""

    async def open_connection(host, port):
        if tracker is not None:
            tracker["active"] += 1
            tracker["peak"] = max(tracker["peak"], tracker["active"])
        try:
            await asyncio.sleep(0.01)
            if host in slow_hosts:
                await asyncio.sleep(10)
            if host not in open_hosts:
                raise ConnectionRefusedError(f"refused {host}:{port}")
            return object(), _FakeWriter()
        finally:
            if tracker is not None:
                tracker["active"] -= 1

    return open_connection


async def collect(scanner, *args, **kwargs):
    return [endpoint async for endpoint in scanner.scan(*args, **kwargs)]


async def test_single_open_host_yields_one_endpoint(monkeypatch):
    monkeypatch.setattr(scanner_module.asyncio, "open_connection", fake_network({"192.168.1.50"}))

    results = await collect(SubnetScanner(timeout=1.0), "192.168.1", 9100)

    assert results == [Endpoint(address="192.168.1.50", port=9100)]


async def test_results_stay_within_prefix_and_range(monkeypatch):
    every_host = {f"10.1.2.{octet}" for octet in range(0, 256)}
    monkeypatch.setattr(scanner_module.asyncio, "open_connection", fake_network(every_host))

    results = await collect(SubnetScanner(timeout=1.0), "10.1.2", 631)

    assert len(results) == 254
    assert {endpoint.address for endpoint in results} == {f"10.1.2.{octet}" for octet in range(1, 255)}
    assert all(endpoint.port == 631 for endpoint in results)


async def test_timeouts_yield_nothing(monkeypatch):
    network = fake_network({"192.168.0.10", "192.168.0.20"}, slow_hosts={"192.168.0.20"})
    monkeypatch.setattr(scanner_module.asyncio, "open_connection", network)

    results = await collect(SubnetScanner(), "192.168.0", 9100, timeout=0.2)

    assert results == [Endpoint(address="192.168.0.10", port=9100)]


async def test_concurrency_is_bounded(monkeypatch):
    tracker = {"active": 0, "peak": 0}
    monkeypatch.setattr(scanner_module.asyncio, "open_connection", fake_network(set(), tracker=tracker))

    results = await collect(SubnetScanner(timeout=1.0, max_concurrency=16), "172.16.5", 9100)

    assert results == []
    assert 1 <= tracker["peak"] <= 16


async def test_scan_is_restartable(monkeypatch):
    monkeypatch.setattr(scanner_module.asyncio, "open_connection", fake_network({"192.168.1.7"}))
    scanner = SubnetScanner(timeout=1.0)

    first = await collect(scanner, "192.168.1", 9100)
    second = await collect(scanner, "192.168.1", 9100)

    assert first == second == [Endpoint(address="192.168.1.7", port=9100)]


async def test_early_exit_cancels_pending_attempts(monkeypatch):
    network = fake_network({"192.168.1.1"}, slow_hosts={f"192.168.1.{o}" for o in range(2, 255)})
    monkeypatch.setattr(scanner_module.asyncio, "open_connection", network)

    scan = SubnetScanner(timeout=30).scan("192.168.1", 9100)
    first = await asyncio.wait_for(scan.__anext__(), 2)
    await asyncio.wait_for(scan.aclose(), 2)

    assert first.address == "192.168.1.1"


@pytest.mark.parametrize("prefix", ["192.168.1.0", "192.168", "300.1.1", "a.b.c", ""])
def test_invalid_prefix_rejected(prefix):
    with pytest.raises(ValueError):
        validate_prefix(prefix)


def test_invalid_max_concurrency():
    with pytest.raises(ValueError):
        SubnetScanner(max_concurrency=0)


async def test_probe_against_loopback(printer_server, closed_port):
    assert await probe("127.0.0.1", printer_server.port, 1.0)
    assert not await probe("127.0.0.1", closed_port, 1.0)
