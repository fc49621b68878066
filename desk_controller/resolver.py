"""Locates the desk's control and position characteristics."""

import logging
from typing import Callable, Optional

from desk_controller.codec import UUID_CONTROL, UUID_POSITION
from desk_controller.exceptions import (
    CannotSubscribePosition,
    CharacteristicsDiscoveryFailed,
    CharacteristicsNotFound,
)
from desk_controller.transport import Attribute, DeviceHandle, TransportError

logger = logging.getLogger(__name__)


def _find(attributes: list[Attribute], uuid: str) -> Optional[Attribute]:
    for attr in attributes:
        if str(attr.uuid).lower() == uuid:
            return attr
    return None


async def resolve(
    handle: DeviceHandle,
    subscribe: bool = True,
    on_position: Optional[Callable[[bytes], None]] = None,
) -> tuple[Attribute, Attribute]:
    """
    Find the control and position characteristics on a connected desk.

    A desk missing either one is the wrong device or runs unexpected
    firmware, so nothing is retried here.

    Args:
        handle: Connected device
        subscribe: Also enable position notifications
        on_position: Receives raw position notifications when subscribed

    Returns:
        Tuple of (control, position)

    Raises:
        CharacteristicsDiscoveryFailed: If enumeration fails
        CharacteristicsNotFound: If a required characteristic is absent
        CannotSubscribePosition: If notifications cannot be enabled
    """
    try:
        attributes = await handle.discover_attributes()
    except TransportError as e:
        raise CharacteristicsDiscoveryFailed(str(e)) from e

    control = _find(attributes, UUID_CONTROL)
    if control is None:
        raise CharacteristicsNotFound("Control")

    position = _find(attributes, UUID_POSITION)
    if position is None:
        raise CharacteristicsNotFound("Position")

    if subscribe:
        try:
            await handle.subscribe(position, on_position or (lambda data: None))
        except TransportError as e:
            raise CannotSubscribePosition(str(e)) from e
        logger.debug("Subscribed to position notifications")

    return control, position
