import asyncio
import json
import os
import sys
from dotenv import load_dotenv

# Load env vars
load_dotenv()

# --- PATH FIX ---
# Get the path to the project root (one level up from 'scripts')
project_root = os.path.dirname(os.path.dirname(os.path.abspath(__file__)))
sys.path.append(project_root)

from storeadmin.config import load_config
from storeadmin.errors import StoreAdminError
from storeadmin.shell import AppShell
from storeadmin.workflow import next_status

HELP = """Commands:
  views                      list views and badges
  show <view>                print a view snapshot
  live on|off                toggle live updates
  advance <order id>         move an order to its next status
  refresh                    bump the refresh key
  quit"""


async def main():
    config = load_config()
    if not config.admin_email or not config.admin_password:
        print("❌ Warning: ADMIN_EMAIL / ADMIN_PASSWORD not found in .env file!")
        sys.exit(1)

    shell = AppShell.from_config(config)
    await shell.start()
    await shell.sign_in(config.admin_email, config.admin_password)

    print("--- 🛒 Store Admin CLI Debugger ---")
    print(f"👤 Logged in as: {shell.auth.user}")
    print(HELP)
    print("---------------------------------")

    try:
        while True:
            line = (await asyncio.to_thread(input, "admin> ")).strip()
            if line.lower() in ["quit", "exit"]:
                break
            cmd, _, arg = line.partition(" ")
            try:
                if cmd == "views":
                    await shell.refresh_badges()
                    for route in shell.routes():
                        print(f"  {route['title']:<12} {route['badge'] if route['badge'] is not None else ''}")
                elif cmd == "show" and arg in shell.views:
                    print(json.dumps(shell.view(arg).snapshot(), indent=2, default=str))
                elif cmd == "live" and arg in ("on", "off"):
                    print(f"Live updates: {await shell.set_live_updates(arg == 'on')}")
                elif cmd == "advance" and arg.isdigit():
                    orders = shell.view("orders")
                    target = orders.next_status(int(arg))
                    if target is None:
                        print("No next status for this order")
                        continue
                    await orders.set_status(int(arg), target.value)
                    following = next_status(target)
                    print(f"✅ Order {arg} -> {target.value}" + (f" (next: {following.value})" if following else ""))
                elif cmd == "refresh":
                    print(f"Refresh key: {shell.bump()}")
                    await shell.settle()
                else:
                    print(HELP)
            except StoreAdminError as e:
                print(f"❌ Error: {e}")
    finally:
        await shell.stop()


if __name__ == "__main__":
    asyncio.run(main())
