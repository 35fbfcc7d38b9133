"""
MCP Server for the NetSuite Transaction Tracker

Exposes the tracker lifecycle as MCP tools, so that an AI client
(Claude / ChatGPT) can read and update transaction trackers:

- tracker_state(record_type, record_id)
- tracker_status_options()
- tracker_form(record_type, record_id, role_id)      -> before-display hook
- seed_tracker(record_type, record_id)               -> after-create hook
- update_tracker_status(record_type, record_id, status, memo)
"""

# FastMCP is a lightweight helper that makes it easy
# to create an MCP-compatible tool server
from mcp.server.fastmcp import FastMCP

from tracker_lifecycle import TrackerController, build_controller
from tracker_models import HostRecord
from tracker_surface import TrackerForm

# The name is what AI clients will see
mcp = FastMCP("netsuite-transaction-tracker")


def register_tools(server, controller: TrackerController) -> None:
    """
    Register the tracker tools on `server`.
    Business logic stays in the controller; this is MCP wiring only.
    """

    @server.tool()
    def tracker_state(record_type: str, record_id: str) -> dict:
        """
        MCP Tool: tracker_state

        Return the current (most recent) tracker of a transaction:
        status, memo, updated on / updated by. `exists` is false when the
        transaction has no tracker yet.
        """
        return controller.read_state(record_type, record_id).to_dict()

    @server.tool()
    def tracker_status_options() -> dict:
        """Return the active tracker statuses (code + label)."""
        options = controller.status_options()
        return {
            "count": len(options),
            "options": [{"code": o.code, "label": o.label} for o in options],
        }

    @server.tool()
    def tracker_form(record_type: str, record_id: str, role_id: str = "", mode: str = "view") -> dict:
        """
        MCP Tool: tracker_form

        Return the button and fields the transaction form should show for
        this role (nothing when the role is not allowed or can't read trackers).
        """
        form = TrackerForm()
        outcome = controller.on_before_display(
            HostRecord(record_type=record_type, record_id=record_id, mode=mode),
            form,
            role_id=role_id or None,
        )
        result = outcome.to_dict()
        result["form"] = form.to_dict()
        return result

    @server.tool()
    def seed_tracker(record_type: str, record_id: str) -> dict:
        """
        MCP Tool: seed_tracker

        Call right after a transaction is created. Adds the default tracker
        unless the transaction already has one.
        """
        return controller.on_after_write(
            HostRecord(record_type=record_type, record_id=record_id, mode="create"),
            is_newly_created=True,
        ).to_dict()

    @server.tool()
    def update_tracker_status(record_type: str, record_id: str, status: str, memo: str = "") -> dict:
        """
        MCP Tool: update_tracker_status

        Set the tracker status/memo of a transaction (creates the tracker if
        it has none). 'Partially Returned' requires a memo.
        """
        return controller.submit_update(record_type, record_id, status, memo).to_dict()


# Entry point when running this file directly
if __name__ == "__main__":
    register_tools(mcp, build_controller())
    # Start the MCP server over stdio
    mcp.run(transport="stdio")
