import pytest

from desk_controller.config import DeskSettings
from desk_controller.controller import DeskController
from desk_controller.discovery import DEFAULT_LOOP_INTERVAL, AddressMatcher, DeviceAddress, NameMatcher
from desk_controller.exceptions import MacAddrParseFailed


def test_defaults():
    settings = DeskSettings.from_env({})
    assert settings.name == "Desk"
    assert settings.address is None
    assert settings.discovery_attempts == 240
    assert settings.discovery_interval == 0.05
    assert settings.poll_interval == 0.1
    assert settings.move_timeout is None
    assert settings.subscribe is True
    assert settings.matcher() == NameMatcher("Desk")


def test_from_env():
    settings = DeskSettings.from_env(
        {
            "DESK_NAME": "Office",
            "DESK_ADAPTER": "hci1",
            "DESK_DISCOVERY_ATTEMPTS": "120",
            "DESK_DISCOVERY_INTERVAL": "0.1",
            "DESK_MOVE_TIMEOUT": "30",
            "DESK_SUBSCRIBE": "no",
        }
    )
    assert settings.name == "Office"
    assert settings.adapter == "hci1"
    assert settings.discovery_attempts == 120
    assert settings.discovery_interval == 0.1
    assert settings.move_timeout == 30.0
    assert settings.subscribe is False


def test_address_wins_over_name():
    settings = DeskSettings.from_env({"DESK_NAME": "Office", "DESK_ADDRESS": "aa:bb:cc:dd:ee:ff"})
    assert settings.matcher() == AddressMatcher(DeviceAddress("AA:BB:CC:DD:EE:FF"))


def test_malformed_address():
    settings = DeskSettings.from_env({"DESK_ADDRESS": "kitchen"})
    with pytest.raises(MacAddrParseFailed):
        settings.matcher()


@pytest.mark.parametrize(
    "key, value",
    [
        ("DESK_DISCOVERY_ATTEMPTS", "many"),
        ("DESK_POLL_INTERVAL", "fast"),
        ("DESK_SUBSCRIBE", "maybe"),
    ],
)
def test_invalid_values(key, value):
    with pytest.raises(ValueError, match=key):
        DeskSettings.from_env({key: value})


def test_settings_and_controller_share_loop_interval(desk):
    assert DeskSettings().poll_interval == DEFAULT_LOOP_INTERVAL
    assert DeskSettings.from_env({}).poll_interval == DEFAULT_LOOP_INTERVAL
    assert DeskController(desk, None, None).poll_interval == DEFAULT_LOOP_INTERVAL
