#!/usr/bin/env python3
"""
Scan receipt images from the command line.

Compresses each image locally, sends them to the receipt scanning API in one
batch and prints the extracted line items and totals.

Usage:
    python scan_receipts.py receipt1.jpg receipt2.png --model gemini-2.5-flash
"""

import argparse
import sys
import requests
from datetime import datetime
from pathlib import Path
from receipt_scanner.models.receipt import display_category
from receipt_scanner.services.errors import ImageDecodeError
from receipt_scanner.services.image_compressor import compress_image

# Configuration
API_BASE_URL = "http://127.0.0.1:8000"


def format_price(value: float) -> str:
    return f"{value:,.2f}"


def build_entry(file_path: Path) -> dict:
    """Compress an image file and build one request entry for it"""
    compressed = compress_image(file_path.read_bytes())
    captured_at = compressed.captured_at or datetime.fromtimestamp(file_path.stat().st_mtime)
    return {
        "image": compressed.base64_data,
        "mimeType": compressed.mime_type,
        "capturedAt": captured_at.isoformat(),
    }


def format_outcome(name: str, outcome: dict) -> str:
    """Render one scan result as plain text"""
    if not outcome.get("success"):
        return f"❌ {name}: {outcome.get('error', 'Failed to scan receipt')}"

    data = outcome["data"]
    lines = [f"✅ {name}: {data.get('storeName') or 'Unknown store'}"]
    if data.get("date"):
        lines.append(f"   Date: {data['date']}")
    lines.append(f"   Category: {display_category(data.get('category'))}")

    items = data.get("items") or []
    if items:
        width = max(len(item["name"]) for item in items)
        lines.append(f"   {'Item'.ljust(width)}  {'Qty':>5}  {'Price':>10}")
        for item in items:
            qty = item["quantity"]
            qty_text = str(int(qty)) if float(qty).is_integer() else str(qty)
            lines.append(f"   {item['name'].ljust(width)}  {qty_text:>5}  {format_price(item['price']):>10}")

    if data.get("subtotal") is not None:
        lines.append(f"   Subtotal: {format_price(data['subtotal'])}")
    if data.get("tax") is not None:
        lines.append(f"   Tax: {format_price(data['tax'])}")
    lines.append(f"   Total: {format_price(data['total'])}")
    return "\n".join(lines)


def scan(files: list[Path], model: str | None = None, api_base_url: str = API_BASE_URL) -> int:
    names = []
    entries = []
    for file_path in files:
        try:
            entries.append(build_entry(file_path))
            names.append(file_path.name)
        except (ImageDecodeError, OSError) as e:
            print(f"⚠️  Skipping {file_path.name}: {e}")

    if not entries:
        print("❌ No readable images to scan")
        return 1

    payload = {"images": entries}
    if model:
        payload["model"] = model

    print(f"🔄 Scanning {len(entries)} receipt(s) via {api_base_url} ...")
    response = requests.post(f"{api_base_url}/receipts/scan", json=payload, timeout=300)

    if response.status_code != 200:
        try:
            detail = response.json().get("detail")
        except ValueError:
            detail = response.text
        print(f"❌ ERROR: {response.status_code} - {detail}")
        return 1

    data = response.json()
    print(f"Model: {data['model']}")
    print("-" * 70)
    for name, outcome in zip(names, data["results"]):
        print(format_outcome(name, outcome))
        print()
    return 0


def main():
    parser = argparse.ArgumentParser(description="Scan receipt images")
    parser.add_argument("files", nargs="+", type=Path, help="Receipt image files")
    parser.add_argument("--model", default=None, help="Gemini model id (server default if omitted)")
    parser.add_argument("--api", default=API_BASE_URL, help=f"API base URL (default: {API_BASE_URL})")
    args = parser.parse_args()

    sys.exit(scan(args.files, model=args.model, api_base_url=args.api))


if __name__ == "__main__":
    main()
