"""Tests for the listen address check."""

from __future__ import annotations

import socket

import pytest

from vouch.config import Config
from vouch.exceptions import ListenAddressUnavailableError
from vouch.network import ensure_listen_address_free, is_listen_address_free


def unused_port() -> int:
    with socket.socket(socket.AF_INET, socket.SOCK_STREAM) as sock:
        sock.bind(("127.0.0.1", 0))
        return sock.getsockname()[1]


def test_free_address() -> None:
    port = unused_port()

    assert is_listen_address_free("127.0.0.1", port)

    # The check must not leave the port bound.
    with socket.socket(socket.AF_INET, socket.SOCK_STREAM) as sock:
        sock.bind(("127.0.0.1", port))
    assert is_listen_address_free("127.0.0.1", port)
    ensure_listen_address_free(Config(listen="127.0.0.1", port=port))


def test_bound_address() -> None:
    with socket.socket(socket.AF_INET, socket.SOCK_STREAM) as sock:
        sock.bind(("127.0.0.1", 0))
        sock.listen()
        port = sock.getsockname()[1]

        assert not is_listen_address_free("127.0.0.1", port)
        config = Config(listen="127.0.0.1", port=port)
        with pytest.raises(ListenAddressUnavailableError) as excinfo:
            ensure_listen_address_free(config)

    assert excinfo.value.address == f"127.0.0.1:{port}"
    assert str(excinfo.value) == (
        f"127.0.0.1:{port} is not available (is Vouch already running?)"
    )


def test_unassigned_address() -> None:
    assert not is_listen_address_free("192.0.2.1", unused_port())


def test_recently_closed_address() -> None:
    with socket.socket(socket.AF_INET, socket.SOCK_STREAM) as server:
        server.bind(("127.0.0.1", 0))
        server.listen()
        port = server.getsockname()[1]
        client = socket.create_connection(("127.0.0.1", port))
        conn, _ = server.accept()

        # Closing the accepted side first leaves it in TIME_WAIT.
        conn.close()
        client.close()

    assert is_listen_address_free("127.0.0.1", port)
