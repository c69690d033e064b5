"""End-to-end scenario demonstrating the Python client API."""

from __future__ import annotations

import os
import random
import string

from winremote_client import (
    ConnectionError,
    GroupParams,
    KerberosConfig,
    ProtocolError,
    RunContext,
    SSHConfig,
    WindowsClient,
    WinRMConfig,
)
from winremote_client.config import ConnectionConfig

TRANSPORT = os.getenv("WINREMOTE_DEMO_TRANSPORT", "ssh")
HOST = os.getenv("WINREMOTE_DEMO_HOST", "127.0.0.1")
USERNAME = os.getenv("WINREMOTE_DEMO_USER", "vagrant")
PASSWORD = os.getenv("WINREMOTE_DEMO_PASSWORD", "vagrant")


def log_section(title: str) -> None:
    print("\n" + "=" * 80)
    print(title)
    print("=" * 80)


def build_config() -> ConnectionConfig:
    if TRANSPORT == "ssh":
        return SSHConfig(
            host=HOST,
            port=int(os.getenv("WINREMOTE_DEMO_PORT", "22")),
            username=USERNAME,
            password=PASSWORD,
            insecure_ignore_host_key=os.getenv("WINREMOTE_DEMO_INSECURE") == "1",
        )

    realm = os.getenv("WINREMOTE_DEMO_REALM")
    return WinRMConfig(
        host=HOST,
        port=int(os.environ["WINREMOTE_DEMO_PORT"]) if "WINREMOTE_DEMO_PORT" in os.environ else None,
        username=USERNAME,
        password=None if realm else PASSWORD,
        use_tls=os.getenv("WINREMOTE_DEMO_TLS") == "1",
        insecure_skip_verify=os.getenv("WINREMOTE_DEMO_INSECURE") == "1",
        kerberos=KerberosConfig(realm=realm, krb_config_file=os.getenv("KRB5_CONFIG")) if realm else None,
    )


def main() -> None:
    log_section("winremote Python Client: Real-World Scenario")
    print(f"Connecting to {HOST} over {TRANSPORT} as {USERNAME}")
    log_level = os.getenv("WINREMOTE_CLIENT_LOG", "info")

    try:
        client = WindowsClient(build_config(), log_level=log_level)
    except ConnectionError as exc:
        print(f"→ Cannot reach {HOST}: {exc}")
        raise

    with client:
        log_section("Step 1: Run a Plain Command")
        print(f"→ hostname: {client.execute('hostname', RunContext(timeout=30)).strip()}")

        log_section("Step 2: List Local Groups")
        for group in client.local.group_list():
            print(f"  {group.name:<40} {group.sid}")

        log_section("Step 3: Create, Update and Delete a Group")
        name = "demo_" + "".join(random.choices(string.ascii_lowercase, k=6))
        created = client.local.group_create(GroupParams(name=name, description="created by winremote"))
        print(f"→ Created {created.name} ({created.sid})")
        updated = client.local.group_update(GroupParams(sid=created.sid, description="updated by winremote"))
        print(f"→ Description now '{updated.description}'")
        client.local.group_delete(GroupParams(sid=created.sid))
        print(f"→ Deleted {created.name}")

        log_section("Step 4: Remote Errors Are Decoded")
        try:
            client.execute("Get-Item C:\\missing")
        except ProtocolError as exc:
            print(f"→ {exc.kind.value} error: {exc}")

        log_section("Step 5: Cancellation")
        ctx = RunContext(timeout=2)
        result = client.execute_safe("Start-Sleep -Seconds 30; 'done'", ctx)
        print(f"→ ok={result.ok} error={result.error!r}")


if __name__ == "__main__":
    main()
