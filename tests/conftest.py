"""Pytest configuration and fixtures."""

import os
from typing import Any, Optional
from unittest.mock import AsyncMock

import pytest

# Set test environment
os.environ["ENVIRONMENT"] = "test"
os.environ["RETRY_INTERVAL"] = "0"
os.environ["INIT_POLL_INTERVAL"] = "0.001"
os.environ["TRANSPORT_FACTORY"] = ""
os.environ["ETH_APP_FACTORY"] = ""
os.environ["SOL_APP_FACTORY"] = ""

from ledgersigner.config import get_settings
from ledgersigner.device.base import DeviceAPI
from ledgersigner.device.session import reset_device_sessions

ETH_ADDRESS = "0x9858effd232b4033e47d90003d41ec34ecaeda94"
ETH_PUBLIC_KEY = "04" + "ab" * 64
SOL_PUBLIC_KEY = bytes(range(32))
SIG_R = "1f" * 32
SIG_S = "2e" * 32


class FakeLedgerError(Exception):
    """Error shaped like the ones raised by the Ledger JS/Python libraries."""

    def __init__(self, message: str = "", id: Optional[str] = None, status_code: Optional[int] = None):
        super().__init__(message)
        self.id = id
        self.statusCode = status_code


def busy_error() -> FakeLedgerError:
    return FakeLedgerError("Ledger Device is busy (lock signTransaction)", id="TransportLocked")


def status_error(status_code: int) -> FakeLedgerError:
    return FakeLedgerError(f"Ledger device: UNKNOWN_ERROR (0x{status_code:04x})", status_code=status_code)


class FakeEthDevice(DeviceAPI):
    """In-memory stand-in for the Ledger Ethereum app."""

    def __init__(self, transport: Any = None):
        self.transport = transport
        self.get_app_configuration = AsyncMock(return_value={"version": "1.10.4"})
        self.get_address = AsyncMock(
            return_value={"address": ETH_ADDRESS, "publicKey": ETH_PUBLIC_KEY}
        )
        self.sign_transaction = AsyncMock(return_value={"r": SIG_R, "s": SIG_S, "v": "01"})
        self.sign_personal_message = AsyncMock(return_value={"r": SIG_R, "s": SIG_S, "v": 28})
        self.sign_typed_message = AsyncMock(return_value={"r": SIG_R, "s": SIG_S, "v": 27})
        self.sign_typed_hashed_message = AsyncMock(return_value={"r": SIG_R, "s": SIG_S, "v": 28})

    async def get_app_configuration(self) -> Any:  # replaced per instance
        raise NotImplementedError

    async def get_address(self, path: str) -> Any:  # replaced per instance
        raise NotImplementedError


class FakeSolanaDevice(DeviceAPI):
    """In-memory stand-in for the Ledger Solana app."""

    def __init__(self, transport: Any = None):
        self.transport = transport
        self.get_app_configuration = AsyncMock(return_value={"version": "1.4.1"})
        self.get_address = AsyncMock(return_value={"address": SOL_PUBLIC_KEY})
        self.sign_transaction = AsyncMock(return_value={"signature": b"\x07" * 64})
        self.sign_offchain_message = AsyncMock(return_value={"signature": b"\x09" * 64})

    async def get_app_configuration(self) -> Any:  # replaced per instance
        raise NotImplementedError

    async def get_address(self, path: str) -> Any:  # replaced per instance
        raise NotImplementedError


class StubProvider:
    """Device provider exposing a mutable device reference."""

    def __init__(self, device: Any = None):
        self.device = device


@pytest.fixture(autouse=True)
def reset_state():
    """Reset settings cache and process-wide sessions around each test."""
    get_settings.cache_clear()
    reset_device_sessions()
    yield
    reset_device_sessions()
    get_settings.cache_clear()


@pytest.fixture
def transport():
    return object()


@pytest.fixture
def open_transport(transport):
    """Transport factory returning the same transport handle."""
    return AsyncMock(return_value=transport)


@pytest.fixture
def eth_device():
    return FakeEthDevice()


@pytest.fixture
def sol_device():
    return FakeSolanaDevice()
