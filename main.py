import sys

from netsuite_client import NetSuiteClient
from tracker_lifecycle import build_controller


def main(argv=None):
    """
    Entry point for the app.

    python main.py                       -> check the NetSuite connection
    python main.py <record_type> <id>    -> print the tracker of one transaction
    """
    argv = sys.argv[1:] if argv is None else argv

    print("🔐 Initializing NetSuite client...")
    client = NetSuiteClient()

    if len(argv) < 2:
        print("📡 Calling NetSuite metadata catalog...")
        data = client.get_metadata_catalog()
        items = data.get("items", [])
        print(f"✅ Connected successfully! Found {len(items)} record types.")
        return 0

    record_type, record_id = argv[0], argv[1]
    controller = build_controller(client.settings, client)

    outcome = controller.read_state(record_type, record_id)
    if not outcome.ok:
        for notice in outcome.notices:
            print(f"⚠️  {notice.title}: {notice.message}")
        return 1

    state = outcome.state
    if not state.exists:
        print(f"No tracker yet for {record_type} {record_id}.")
        return 0

    print(f"📌 Tracker {state.tracker_id} for {record_type} {record_id}")
    print(" - Status:    ", state.status_name or state.status_code)
    print(" - Memo:      ", state.memo or "-")
    print(" - Updated on:", state.updated_on or "-")
    print(" - Updated by:", state.updated_by or "-")
    return 0


if __name__ == "__main__":
    sys.exit(main())
