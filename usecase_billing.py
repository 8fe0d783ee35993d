"""Script to replay a booking + billing scenario via the HTTP API.

Usage examples:

- Default (uses built-in presets):
    `python usecase_billing.py`

- Provide a JSON/YAML config with your own scenario:
    `python usecase_billing.py --config ./my_scenario.yaml`

- Preview without sending requests:
    `python usecase_billing.py --dry-run`

The config file may define `baseUrl`, `period`, `rooms`, `providers`,
`upgrades` and `bookings`. See the presets below for the expected shape.
Rooms, providers and upgrades are referenced by name inside `bookings`.
"""
from __future__ import annotations

import argparse
import json
from pathlib import Path
from typing import Any, Dict, List, Optional
from uuid import uuid4

import requests
import yaml
from openpyxl import Workbook
from openpyxl.styles import Alignment, Font, PatternFill
from openpyxl.utils import get_column_letter
from rich import box
from rich.console import Console
from rich.panel import Panel
from rich.table import Table

BASE_URL = "http://localhost:8000"
SESSION = requests.Session()
DRY_RUN = False
CONSOLE = Console()

# ---------------------------------------------------------------------------
# 1) Billing period covered by the generated invoices.
PERIOD: Dict[str, str] = {
    "start": "2024-03-01T00:00:00",
    "end": "2024-04-01T00:00:00",
}

# ---------------------------------------------------------------------------
# 2) Rooms with their opening rate and optional duration tiers.
ROOM_PRESETS: List[Dict[str, Any]] = [
    {
        "name": "Studio Blue",
        "hourlyRate": "70.00",
        "validFrom": "2024-01-01T00:00:00",
        "tiers": [
            {"fromMinutes": 0, "toMinutes": 30, "priceType": "FIXED", "price": "75.00"},
            {"fromMinutes": 30, "toMinutes": None, "priceType": "HOURLY", "price": "120.00"},
        ],
    },
    {
        "name": "Studio Green",
        "hourlyRate": "70.00",
        "validFrom": "2024-01-01T00:00:00",
        "tiers": [
            {"fromMinutes": 0, "toMinutes": 180, "priceType": "HOURLY", "price": "70.00"},
            {"fromMinutes": 180, "toMinutes": None, "priceType": "HOURLY", "price": "60.00"},
        ],
    },
    {"name": "Small Room", "hourlyRate": "40.00", "validFrom": "2024-01-01T00:00:00", "tiers": []},
]

# ---------------------------------------------------------------------------
# 3) Service providers (the invoiced counterparties) and upgrades.
PROVIDER_PRESETS: List[Dict[str, Any]] = [
    {"name": "Anna"},
    {"name": "Marco"},
]

UPGRADE_PRESETS: List[Dict[str, Any]] = [
    {"name": "Towels", "price": "20.00", "validFrom": "2024-01-01T00:00:00"},
    {"name": "Hot stones", "price": "12.50", "validFrom": "2024-01-01T00:00:00"},
]

# ---------------------------------------------------------------------------
# 4) Bookings. `upgrades` maps an upgrade name to its quantity.
BOOKING_PRESETS: List[Dict[str, Any]] = [
    {"provider": "Anna", "room": "Studio Blue", "startTime": "2024-03-04T09:00:00", "durationMinutes": 90,
     "restingTimeMinutes": 15, "clientAlias": "C-101", "upgrades": {"Towels": 2}},
    {"provider": "Anna", "room": "Small Room", "startTime": "2024-03-04T11:00:00", "durationMinutes": 45,
     "clientAlias": "C-102"},
    {"provider": "Marco", "room": "Studio Green", "startTime": "2024-03-05T10:00:00", "durationMinutes": 300,
     "clientAlias": "C-201", "upgrades": {"Hot stones": 1}},
    {"provider": "Marco", "room": "Studio Blue", "startTime": "2024-03-06T14:00:00", "durationMinutes": 30},
]


def load_config(path: Optional[str]) -> None:
    """Load an external scenario to override the presets.

    Supported formats: JSON (.json) and YAML (.yml/.yaml).
    """
    global BASE_URL, PERIOD, ROOM_PRESETS, PROVIDER_PRESETS, UPGRADE_PRESETS, BOOKING_PRESETS
    if not path:
        return

    file = Path(path)
    if not file.exists():
        raise FileNotFoundError(f"Config file not found: {path}")

    if file.suffix.lower() in (".yml", ".yaml"):
        content = yaml.safe_load(file.read_text(encoding="utf-8")) or {}
    else:
        content = json.loads(file.read_text(encoding="utf-8")) or {}

    if isinstance(content.get("baseUrl"), str):
        BASE_URL = content["baseUrl"].rstrip("/")
    if isinstance(content.get("period"), dict):
        PERIOD = {**PERIOD, **content["period"]}
    if isinstance(content.get("rooms"), list):
        ROOM_PRESETS = content["rooms"]
    if isinstance(content.get("providers"), list):
        PROVIDER_PRESETS = content["providers"]
    if isinstance(content.get("upgrades"), list):
        UPGRADE_PRESETS = content["upgrades"]
    if isinstance(content.get("bookings"), list):
        BOOKING_PRESETS = content["bookings"]


def main() -> None:
    args = parse_args()
    load_config(args.config)
    global DRY_RUN
    DRY_RUN = bool(args.dry_run)
    if args.base_url:
        update_base_url(args.base_url)

    rooms = create_rooms(ROOM_PRESETS)
    providers = create_providers(PROVIDER_PRESETS)
    upgrades = create_upgrades(UPGRADE_PRESETS)
    booking_ids = create_bookings(BOOKING_PRESETS, rooms, providers, upgrades)
    billings = generate_billings(booking_ids)
    print_billings(billings, providers)
    if args.excel:
        export_excel_items(billings, providers, args.excel)


def parse_args() -> argparse.Namespace:
    parser = argparse.ArgumentParser(description="Replay a booking and billing scenario")
    parser.add_argument("--config", type=str, default=None, help="Path to JSON/YAML scenario")
    parser.add_argument("--dry-run", action="store_true", help="Print requests without sending")
    parser.add_argument("--base-url", type=str, default=None, help="Override backend base URL (e.g. http://localhost:8000)")
    parser.add_argument("--excel", type=str, default=None, help="Write invoice line items to this .xlsx file")
    return parser.parse_args()


def update_base_url(url: str) -> None:
    global BASE_URL
    BASE_URL = url.rstrip("/")

# --- HTTP helpers ---------------------------------------------------------

def post(path: str, payload: Dict[str, Any], fake: Dict[str, Any]) -> Any:
    """POST ``payload``; in dry-run mode print it and return ``fake`` instead."""
    if DRY_RUN:
        CONSOLE.print(
            Panel.fit(f"[DRY] POST {BASE_URL}{path}\n{json.dumps(payload)}", title="Dry Run", border_style="magenta")
        )
        return fake
    resp = SESSION.post(f"{BASE_URL}{path}", json=payload, timeout=5)
    if resp.status_code >= 400:
        CONSOLE.print(Panel(f"[red]{resp.status_code}[/] {resp.text}", title=f"POST {path}", border_style="red"))
    resp.raise_for_status()
    return resp.json()


def _fake_id(prefix: str) -> str:
    return f"{prefix}-{uuid4().hex[:8]}"


def create_rooms(presets: List[Dict[str, Any]]) -> Dict[str, str]:
    """Create rooms, attach tiers to their opening price. Returns name -> roomId."""
    room_ids: Dict[str, str] = {}
    for preset in presets:
        payload = {key: preset[key] for key in ("name", "hourlyRate", "validFrom") if key in preset}
        room = post("/rooms", payload, {"roomId": _fake_id("room"), "name": preset["name"]})
        room_ids[preset["name"]] = room["roomId"]

        tiers = preset.get("tiers") or []
        if not tiers:
            CONSOLE.print(f"[green]✔ Room {preset['name']} at {preset['hourlyRate']}/h[/]")
            continue
        if DRY_RUN:
            price_id = _fake_id("price")
        else:
            resp = SESSION.get(f"{BASE_URL}/rooms/{room['roomId']}/prices/current", timeout=5)
            resp.raise_for_status()
            price_id = resp.json()["priceId"]
        for tier in tiers:
            post(f"/rooms/{room['roomId']}/prices/{price_id}/tiers", tier, {"tierId": _fake_id("tier")})
        CONSOLE.print(f"[green]✔ Room {preset['name']} with {len(tiers)} tiers[/]")
        print_preview(room["roomId"], price_id, preset["name"])
    return room_ids


def print_preview(room_id: str, price_id: str, name: str) -> None:
    if DRY_RUN:
        return
    resp = SESSION.get(f"{BASE_URL}/rooms/{room_id}/prices/{price_id}/preview", timeout=5)
    resp.raise_for_status()
    body = resp.json()
    table = Table(title=f"Price preview: {name}", box=box.SIMPLE)
    table.add_column("minutes", justify="right")
    table.add_column(body.get("currency", ""), justify="right")
    for minutes, amount in body["prices"].items():
        table.add_row(minutes, amount)
    CONSOLE.print(table)


def create_providers(presets: List[Dict[str, Any]]) -> Dict[str, str]:
    provider_ids: Dict[str, str] = {}
    for preset in presets:
        provider = post("/providers", preset, {"providerId": _fake_id("provider")})
        provider_ids[preset["name"]] = provider["providerId"]
        CONSOLE.print(f"[green]✔ Provider {preset['name']}[/]")
    return provider_ids


def create_upgrades(presets: List[Dict[str, Any]]) -> Dict[str, str]:
    upgrade_ids: Dict[str, str] = {}
    for preset in presets:
        upgrade = post("/upgrades", preset, {"upgradeId": _fake_id("upgrade")})
        upgrade_ids[preset["name"]] = upgrade["upgradeId"]
        CONSOLE.print(f"[green]✔ Upgrade {preset['name']} at {preset['price']}[/]")
    return upgrade_ids


def create_bookings(
    presets: List[Dict[str, Any]],
    rooms: Dict[str, str],
    providers: Dict[str, str],
    upgrades: Dict[str, str],
) -> List[str]:
    booking_ids = []
    table = Table(title="Bookings", box=box.SIMPLE)
    for column in ("provider", "room", "start", "minutes", "upgrades"):
        table.add_column(column)
    for preset in presets:
        payload = {
            "providerId": providers[preset["provider"]],
            "roomId": rooms[preset["room"]],
            "startTime": preset["startTime"],
            "durationMinutes": preset["durationMinutes"],
            "restingTimeMinutes": preset.get("restingTimeMinutes", 0),
            "clientAlias": preset.get("clientAlias", ""),
            "upgrades": [
                {"upgradeId": upgrades[name], "quantity": quantity}
                for name, quantity in (preset.get("upgrades") or {}).items()
            ],
        }
        booking = post("/bookings", payload, {"bookingId": _fake_id("booking")})
        booking_ids.append(booking["bookingId"])
        table.add_row(
            preset["provider"],
            preset["room"],
            preset["startTime"],
            str(preset["durationMinutes"]),
            ", ".join(f"{n} x{q}" for n, q in (preset.get("upgrades") or {}).items()) or "-",
        )
    CONSOLE.print(table)
    return booking_ids


def generate_billings(booking_ids: List[str]) -> List[Dict[str, Any]]:
    payload = {"bookingIds": booking_ids, "periodStart": PERIOD["start"], "periodEnd": PERIOD["end"]}
    billings = post("/billings", payload, [])
    CONSOLE.print(f"[green]✔ Generated {len(billings)} invoices[/]")
    return billings


def print_billings(billings: List[Dict[str, Any]], providers: Dict[str, str]) -> None:
    names = {provider_id: name for name, provider_id in providers.items()}
    for billing in billings:
        table = Table(
            title=f"Invoice {billing['billingId']} ({names.get(billing['providerId'], billing['providerId'])})",
            box=box.SIMPLE,
        )
        for column in ("room", "start", "min", "rate", "room total", "upgrades", "total"):
            table.add_column(column, justify="right" if column not in ("room", "start") else "left")
        for item in billing.get("items", []):
            table.add_row(
                item["roomName"],
                item["startTime"],
                str(item["durationMinutes"]),
                item["roomPriceAmount"],
                item["subtotalRoom"],
                item["subtotalUpgrades"],
                item["totalAmount"],
            )
        CONSOLE.print(table)
        CONSOLE.print(Panel.fit(f"[bold]{billing['totalAmount']}[/]", title="Invoice total", border_style="cyan"))


def export_excel_items(billings: List[Dict[str, Any]], providers: Dict[str, str], filename: str) -> None:
    if not billings:
        CONSOLE.print("[yellow]⚠ No invoices to export[/]")
        return
    names = {provider_id: name for name, provider_id in providers.items()}
    wb = Workbook()
    ws = wb.active
    ws.title = "Invoice items"

    header = [
        "Invoice", "Provider", "Client", "Room", "Start", "End", "Minutes",
        "Rate", "Room total", "Upgrades", "Upgrade total", "Total",
    ]
    ws.append(header)
    header_fill = PatternFill("solid", fgColor="FFF2CC")
    for col in range(1, len(header) + 1):
        cell = ws.cell(row=1, column=col)
        cell.fill = header_fill
        cell.font = Font(bold=True)
        cell.alignment = Alignment(horizontal="center")

    for billing in billings:
        for item in billing.get("items", []):
            ws.append([
                billing["billingId"],
                names.get(billing["providerId"], billing["providerId"]),
                item["clientAlias"],
                item["roomName"],
                item["startTime"],
                item["endTime"],
                item["durationMinutes"],
                float(item["roomPriceAmount"]),
                float(item["subtotalRoom"]),
                ", ".join(f"{u['upgradeName']} x{u['quantity']}" for u in item["upgrades"]),
                float(item["subtotalUpgrades"]),
                float(item["totalAmount"]),
            ])

    for col_idx in range(1, ws.max_column + 1):
        max_len = max(len(str(ws.cell(row=r, column=col_idx).value or "")) for r in range(1, ws.max_row + 1))
        ws.column_dimensions[get_column_letter(col_idx)].width = max(9, min(40, max_len + 2))

    wb.save(filename)
    CONSOLE.print(f"[green]✔ Excel exported: {filename}[/]")


if __name__ == "__main__":
    main()
