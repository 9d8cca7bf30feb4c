#!/usr/bin/env python3
"""Example: identity, resources and streaming traffic

This example opens one API session, runs two commands concurrently over
it, then streams interface traffic for a few samples before cancelling.
"""

from routeros_api import Connection, ReplyKind


def main():
    """Query identity and version, then sample ether1 traffic."""
    with Connection(
        "192.168.88.1",  # Replace with your RouterOS device IP
        "admin",  # Replace with your credentials
        "your-password",
        cmd_timeout=10,
    ) as conn:
        # Both commands are in flight at once; replies are matched by tag
        identity = conn.send_request(False, "/system/identity/print")
        resource = conn.send_request(False, "/system/resource/print", ["=.proplist=version,uptime"])
        conn.wait_all()

        print(f"✓ Identity: {identity.rows[0]['name']}")
        print(f"  → RouterOS version: {resource.rows[0].get('version')}")
        print(f"  → Uptime: {resource.rows[0].get('uptime')}")

        samples = 5

        def on_traffic(request, reply):
            if reply.kind is ReplyKind.ROW:
                print(f"  rx={reply.get('rx-bits-per-second')} tx={reply.get('tx-bits-per-second')}")
                if len(request.rows) == samples:
                    conn.cancel(request)

        print("\nSampling ether1 traffic...")
        monitor = conn.send_request(
            False, "/interface/monitor-traffic", ["=interface=ether1"], on_traffic
        )
        while not monitor.done:
            conn.wait_for_reply()

        conn.quit()


if __name__ == "__main__":
    main()
