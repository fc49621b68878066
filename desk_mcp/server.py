"""
MCP Server for Standing Desk Control.

Exposes desk control as tools that LLMs can call via the Model Context Protocol.
"""

from collections.abc import AsyncIterator
from contextlib import asynccontextmanager

from fastmcp import Context, FastMCP

from desk_controller import (
    MAX_HEIGHT,
    MIN_HEIGHT,
    CannotFindDevice,
    ConnectionFailed,
    DeskController,
    DeskError,
    DeskSettings,
    connect_with_settings,
)

# tenth-millimeters per inch
TENTHS_PER_INCH = 254

mcp = FastMCP(
    "Standing Desk Controller",
    instructions="Control your IKEA Idåsen / Linak standing desk via BLE. "
    "Tools: get_height (check position), move_up/move_down (relative movement), "
    "move_to_height (absolute positioning), stop_desk (emergency stop).",
)


@asynccontextmanager
async def get_desk() -> AsyncIterator[DeskController]:
    """Context manager for desk connection with automatic cleanup."""
    desk = await connect_with_settings(DeskSettings.from_env())
    async with desk:
        yield desk


def describe(height: int) -> str:
    return f'{height / 10:.0f}mm ({height / TENTHS_PER_INCH:.1f}")'


def describe_error(e: DeskError) -> str:
    if isinstance(e, CannotFindDevice):
        return "Error: Desk not found. Is it powered on?"
    if isinstance(e, ConnectionFailed):
        return f"Error: Could not connect to desk - {e}"
    return f"Error: {e}"


@mcp.tool()
async def get_height(ctx: Context) -> str:
    """
    Get the current desk height.

    Returns the height in both millimeters and inches.
    """
    try:
        async with get_desk() as desk:
            return f"Current height: {describe(await desk.query_height())}"
    except DeskError as e:
        return describe_error(e)


@mcp.tool()
async def move_to_height(ctx: Context, height_mm: int) -> str:
    """
    Move the desk to a specific height in millimeters.

    Args:
        height_mm: Target height in millimeters (valid range: 620-1270mm)

    Returns:
        Result of the movement including final height.
    """
    target = height_mm * 10
    if target < MIN_HEIGHT:
        return f"Error: Minimum height is {describe(MIN_HEIGHT)}"
    if target > MAX_HEIGHT:
        return f"Error: Maximum height is {describe(MAX_HEIGHT)}"

    try:
        async with get_desk() as desk:
            final = await desk.move_to(target)
            return f"Moved to {describe(final)}. Target was {height_mm}mm"
    except DeskError as e:
        return describe_error(e)


async def _move_by(inches: float) -> str:
    async with get_desk() as desk:
        start = await desk.query_height()
        target = min(MAX_HEIGHT, max(MIN_HEIGHT, start + round(inches * TENTHS_PER_INCH)))
        final = await desk.move_to(target)
        moved = abs(final - start) / TENTHS_PER_INCH
        return f'Moved to {describe(final)}. Movement: {moved:.1f}"'


@mcp.tool()
async def move_up(ctx: Context, inches: float = 1.0) -> str:
    """
    Move the desk up by the specified number of inches.

    Args:
        inches: How many inches to move up (default: 1.0)
    """
    if inches <= 0:
        return "Error: inches must be positive"
    if inches > 10:
        return "Error: Maximum movement is 10 inches at a time for safety"
    try:
        return await _move_by(inches)
    except DeskError as e:
        return describe_error(e)


@mcp.tool()
async def move_down(ctx: Context, inches: float = 1.0) -> str:
    """
    Move the desk down by the specified number of inches.

    Args:
        inches: How many inches to move down (default: 1.0)
    """
    if inches <= 0:
        return "Error: inches must be positive"
    if inches > 10:
        return "Error: Maximum movement is 10 inches at a time for safety"
    try:
        return await _move_by(-inches)
    except DeskError as e:
        return describe_error(e)


@mcp.tool()
async def stop_desk(ctx: Context) -> str:
    """
    Emergency stop - immediately halt desk movement.

    Use this if the desk is moving and you need to stop it immediately.
    """
    try:
        async with get_desk() as desk:
            await desk.halt()
            return f"Desk stopped at {describe(await desk.query_height())}"
    except DeskError as e:
        return describe_error(e)


def run_server():
    """Run the MCP server."""
    mcp.run()


if __name__ == "__main__":
    run_server()
