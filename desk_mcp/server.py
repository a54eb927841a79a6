"""
MCP Server for Standing Desk Control.

Exposes moving the desk to a height, and listing nearby desks, as tools
that LLMs can call via the Model Context Protocol.
"""

from fastmcp import Context, FastMCP

from desk_mover import (
    MAX_TARGET_MM,
    MIN_TARGET_MM,
    DeskSettings,
    InvalidTargetError,
    MotionState,
    SessionOrchestrator,
    parse_target_height,
)

# Create MCP server
mcp = FastMCP(
    "Standing Desk Mover",
    instructions="Move a Linak standing desk to a height via BLE. "
    f"Tools: move_to_height (absolute positioning, {MIN_TARGET_MM}-{MAX_TARGET_MM}mm), "
    "scan_desks (list nearby Bluetooth devices and their addresses).",
)


def make_orchestrator(lines: list[str]) -> SessionOrchestrator:
    """Build an orchestrator whose progress lines are collected into lines."""
    return SessionOrchestrator(DeskSettings.from_env(), report=lines.append)


async def move_desk(height_mm: int, address: str | None = None) -> str:
    """Move the desk and describe the result in one line."""
    try:
        target = parse_target_height(str(height_mm))
    except InvalidTargetError:
        return f"Error: Height must be between {MIN_TARGET_MM} and {MAX_TARGET_MM}mm"

    lines: list[str] = []
    try:
        orchestrator = make_orchestrator(lines)
    except ValueError as e:
        return f"Error: Invalid configuration - {e}"

    address = address or orchestrator.settings.address
    if not address:
        return "Error: No desk address. Set DESK_ADDRESS or pass an address."

    outcome = await orchestrator.run(address, target)
    if not outcome.ok:
        return f"Error: {outcome.error}"

    result = outcome.result
    if result.state is MotionState.CONVERGED:
        message = f"Desk already at {result.final_height}mm. Target was {target}mm."
    else:
        message = f"Moved to {result.final_height}mm. Target was {target}mm."
    if outcome.disconnect_error:
        message += " Warning: the desk did not disconnect cleanly."
    return message


async def list_desks() -> str:
    """List nearby devices, desks first."""
    lines: list[str] = []
    try:
        orchestrator = make_orchestrator(lines)
    except ValueError as e:
        return f"Error: Invalid configuration - {e}"

    devices = await orchestrator.list_devices()
    desks = [d for d in devices if d.is_desk]
    if desks:
        lines.insert(0, f"Found {len(desks)} desk(s): " + ", ".join(d.address for d in desks))
    return "\n".join(lines)


@mcp.tool()
async def move_to_height(ctx: Context, height_mm: int, address: str | None = None) -> str:
    """
    Move the desk to a specific height in millimeters.

    Args:
        height_mm: Target height in millimeters (valid range: 820-1250mm)
        address: Bluetooth address of the desk (default: DESK_ADDRESS)

    Returns:
        Result of the movement including final height.
    """
    return await move_desk(height_mm, address)


@mcp.tool()
async def scan_desks(ctx: Context) -> str:
    """
    Scan for nearby Bluetooth devices.

    Use this to find the address of the desk.
    """
    return await list_desks()


def run_server():
    """Run the MCP server."""
    mcp.run()


if __name__ == "__main__":
    run_server()
