#!/usr/bin/env python3
import argparse
import json
import os
import sys
import time
from typing import List, Optional

real_script_path = os.path.realpath(__file__)
project_root = os.path.abspath(os.path.join(os.path.dirname(real_script_path), '..'))
if project_root not in sys.path:
    sys.path.insert(0, project_root)

from config.app_config import get_config
from core.dependency_container import get_service, initialize_container
from core.exceptions import VPNManagerError, ClientNotFoundError
from core.logging_config import setup_structured_logging
from core.state_manager import StateManager
from service.client_service import ClientService

def serve_flow(args: argparse.Namespace) -> int:
    """Run the HTTP API (initializes state and honours VLESS_AUTOSTART)."""
    from api.app import main as api_main
    api_main()
    return 0

def init_flow(state_manager: StateManager, args: argparse.Namespace) -> int:
    print("--- Initializing VLESS state ---")
    state_manager.initialize_state()
    print(f"✅ State ready in {state_manager.config.state_dir}")
    print(f"   ├── Server config: {state_manager.paths.server_config_file}")
    print(f"   └── TLS certificate: {state_manager.config.tls_cert_path}")
    return 0

def status_flow(client_service: ClientService, args: argparse.Namespace) -> int:
    status = client_service.get_status()
    if args.json:
        print(json.dumps(status, indent=2))
        return 0

    state = "running" if status["running"] else "stopped"
    pid = f" (pid {status['pid']})" if status.get("pid") else ""
    print(f"Interface:  {status['interface']} [{status['protocol']}/{status['transport']}]")
    print(f"Data plane: {state}{pid}")
    print(f"Endpoint:   {status['endpoint']}:{status['listen_port']}")
    print(f"\n--- Clients ({len(status['clients'])}) ---")
    if not status["clients"]:
        print("No clients found.")
        return 0
    print(f"{'ID':<24} {'Name':<24} {'Created':<22} UUID")
    for client in status["clients"]:
        print(f"{client['id']:<24} {client['name']:<24} {client['created_at']:<22} {client['uuid']}")
    return 0

def create_client_flow(client_service: ClientService, args: argparse.Namespace) -> int:
    result = client_service.create_client(args.name or "")
    print(f"✅ Client '{result['id']}' created.")
    print(f"   ├── Config: {result['config_path']}")
    print(f"   └── Share link: {result['vless_uri']}")
    return 0

def show_config_flow(client_service: ClientService, args: argparse.Namespace) -> int:
    result = client_service.get_client_config(args.client_id)
    if args.uri:
        print(result["vless_uri"])
    else:
        print(result["config"], end="" if result["config"].endswith("\n") else "\n")
    return 0

def start_flow(state_manager: StateManager, args: argparse.Namespace) -> int:
    """Run the data plane in the foreground until it exits or Ctrl+C."""
    state_manager.start_interface()
    print(f"✅ Data plane running (pid {state_manager.supervisor.pid}). Press Ctrl+C to stop.")
    try:
        while state_manager.is_running():
            time.sleep(1)
    except KeyboardInterrupt:
        print("\nStopping data plane...")
        state_manager.stop_interface()
        return 0
    print("❌ Data plane exited.")
    tail = state_manager.supervisor.read_log_tail()
    if tail:
        print(tail)
    return 1

def stop_flow(state_manager: StateManager, args: argparse.Namespace) -> int:
    state_manager.stop_interface()
    print("✅ Data plane stopped.")
    return 0

def build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(
        prog="vless-manager",
        description="Manage VLESS clients and the sing-box data plane.",
    )
    sub = parser.add_subparsers(dest="command")

    sub.add_parser("serve", help="Run the HTTP API")
    sub.add_parser("init", help="Create state directories, TLS material and the default client")

    status = sub.add_parser("status", help="Show data plane status and clients")
    status.add_argument("--json", action="store_true", help="Print raw JSON")

    create = sub.add_parser("create-client", help="Create a new client")
    create.add_argument("name", nargs="?", default="", help="Display name (defaults to client-<timestamp>)")

    show = sub.add_parser("show-config", help="Print a client's sing-box config")
    show.add_argument("client_id")
    show.add_argument("--uri", action="store_true", help="Print the vless:// share link instead")

    sub.add_parser("start", help="Start the data plane")
    sub.add_parser("stop", help="Stop the data plane")
    return parser

def main(argv: Optional[List[str]] = None) -> None:
    parser = build_parser()
    args = parser.parse_args(argv)
    if not args.command:
        parser.print_help()
        sys.exit(1)

    if args.command == "serve":
        sys.exit(serve_flow(args))

    try:
        config = get_config()
        setup_structured_logging(config.monitoring.log_level)
        initialize_container(config)
        state_manager = get_service('state_manager')
        client_service = get_service('client_service')

        if args.command == "init":
            code = init_flow(state_manager, args)
        elif args.command == "status":
            code = status_flow(client_service, args)
        elif args.command == "create-client":
            code = create_client_flow(client_service, args)
        elif args.command == "show-config":
            code = show_config_flow(client_service, args)
        elif args.command == "start":
            code = start_flow(state_manager, args)
        else:
            code = stop_flow(state_manager, args)
    except ClientNotFoundError as e:
        print(f"❌ {e}")
        sys.exit(2)
    except VPNManagerError as e:
        print(f"❌ Error: {e}")
        sys.exit(1)
    except KeyboardInterrupt:
        print("\n\nGoodbye!")
        sys.exit(130)
    sys.exit(code)

if __name__ == "__main__":
    main()
