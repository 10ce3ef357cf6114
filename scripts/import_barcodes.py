#!/usr/bin/env python3
"""
Import barcodes from a CSV file via the Pantry API

This script:
1. Reads a CSV with a `barcode` column and an optional `quantity` column
2. Resolves each barcode (warms the product metadata cache)
3. Records the quantity as an inventory adjustment

Usage:
    python scripts/import_barcodes.py \
        --csv pantry.csv \
        --pantry-url http://localhost:8000 \
        --max-parallel 4
"""

import csv
import argparse
import requests
import time
import logging
from typing import Dict, List, Optional
from datetime import datetime
from concurrent.futures import ThreadPoolExecutor, as_completed

from pantry.async_result import AsyncResult

logging.basicConfig(
    level=logging.INFO,
    format='%(asctime)s - %(levelname)s - %(message)s',
    datefmt='%Y-%m-%d %H:%M:%S'
)
logger = logging.getLogger(__name__)


class PantryAPIClient:
    """Client for the Pantry Service API"""

    def __init__(self, base_url: str, session: Optional[requests.Session] = None, timeout: float = 30):
        self.base_url = base_url.rstrip('/')
        self.session = session or requests.Session()
        self.timeout = timeout
        self.headers = {'Content-Type': 'application/json'}

    def resolve(self, barcode: str) -> Optional[Dict]:
        """Resolve a barcode; returns the product info or None when unknown"""
        response = self.session.get(
            f'{self.base_url}/products/{barcode}',
            headers=self.headers,
            timeout=self.timeout
        )
        if response.status_code == 404:
            return None
        response.raise_for_status()
        return response.json()

    def adjust(self, barcode: str, delta: int) -> int:
        """Record a quantity change and return the resulting quantity"""
        response = self.session.post(
            f'{self.base_url}/inventory/{barcode}/adjustments',
            headers=self.headers,
            json={'delta': delta},
            timeout=self.timeout
        )
        response.raise_for_status()
        return response.json()['quantity']


def load_csv(file_path: str) -> List[Dict[str, object]]:
    """Load barcode rows from a CSV file

    Rows without a barcode are skipped. A missing or empty quantity means
    "resolve only". Barcodes stay strings so leading zeros survive.

    Raises:
        ValueError: If the CSV has no barcode column or a quantity is not an integer
    """
    logger.info(f"Reading CSV file: {file_path}")
    rows = []
    with open(file_path, 'r', encoding='utf-8', newline='') as f:
        reader = csv.DictReader(f)
        if not reader.fieldnames or 'barcode' not in [name.strip() for name in reader.fieldnames]:
            raise ValueError(f"CSV file {file_path} has no 'barcode' column")

        for line_number, row in enumerate(reader, start=2):
            cleaned = {k.strip(): (v.strip() if v else '') for k, v in row.items() if k}
            barcode = cleaned.get('barcode', '')
            if not barcode:
                logger.warning(f"  Line {line_number}: empty barcode, skipped")
                continue
            quantity = cleaned.get('quantity', '')
            try:
                delta = int(quantity) if quantity else None
            except ValueError:
                raise ValueError(f"Line {line_number}: quantity {quantity!r} is not an integer") from None
            rows.append({'barcode': barcode, 'delta': delta})

    logger.info(f"✓ Loaded {len(rows):,} barcodes from CSV")
    return rows


def import_row(client: PantryAPIClient, row: Dict[str, object]) -> Dict[str, object]:
    """Resolve one barcode and apply its quantity; never raises"""
    barcode = row['barcode']
    outcome = {'barcode': barcode, 'name': None, 'quantity': None, 'error': None}
    try:
        info = client.resolve(barcode)
        if info is not None:
            outcome['name'] = info['metadata']['name']
            outcome['quantity'] = info['quantity']
        if row.get('delta') is not None:
            outcome['quantity'] = client.adjust(barcode, row['delta'])
    except requests.exceptions.RequestException as e:
        outcome['error'] = str(e)[:200]
    return outcome


def import_rows(client: PantryAPIClient, rows: List[Dict[str, object]], max_parallel: int = 4) -> List[AsyncResult]:
    """Import rows concurrently; returns one finished AsyncResult per row, in row order"""
    results: List[AsyncResult] = [AsyncResult.empty() for _ in rows]
    if not rows:
        return results

    with ThreadPoolExecutor(max_workers=max(1, min(max_parallel, len(rows)))) as executor:
        future_to_index = {}
        for index, row in enumerate(rows):
            results[index].start_loading()
            future_to_index[executor.submit(import_row, client, row)] = index

        for future in as_completed(future_to_index):
            outcome = future.result()
            results[future_to_index[future]].finish_loading(outcome)
            barcode = outcome['barcode']
            if outcome['error']:
                logger.warning(f"  ⚠ {barcode}: {outcome['error']}")
            elif outcome['name']:
                logger.info(f"  ✓ {barcode}: {outcome['name']} (quantity {outcome['quantity']})")
            else:
                logger.info(f"  ? {barcode}: unknown product (quantity {outcome['quantity']})")
    return results


def main():
    parser = argparse.ArgumentParser(
        description='Import barcodes from a CSV file via the Pantry API',
        formatter_class=argparse.RawDescriptionHelpFormatter,
        epilog="""
Example:
    python scripts/import_barcodes.py \\
        --csv pantry.csv \\
        --pantry-url http://localhost:8000
        """
    )
    parser.add_argument('--csv', required=True, help='Path to CSV file (columns: barcode[,quantity])')
    parser.add_argument('--pantry-url', default='http://localhost:8000', help='Pantry service URL')
    parser.add_argument('--max-parallel', type=int, default=4, help='Maximum parallel requests (default: 4)')
    parser.add_argument('--timeout', type=float, default=30, help='Per-request timeout in seconds')

    args = parser.parse_args()

    script_start_time = time.time()
    logger.info("=" * 70)
    logger.info("PANTRY BARCODE IMPORT")
    logger.info("=" * 70)
    logger.info(f"Started at: {datetime.now().strftime('%Y-%m-%d %H:%M:%S')}")
    logger.info(f"  CSV file: {args.csv}")
    logger.info(f"  Pantry URL: {args.pantry_url}")
    logger.info(f"  Max parallel requests: {args.max_parallel}")

    rows = load_csv(args.csv)
    if not rows:
        logger.error("✗ CSV file has no barcodes")
        return 1

    client = PantryAPIClient(args.pantry_url, timeout=args.timeout)
    results = import_rows(client, rows, max_parallel=args.max_parallel)

    outcomes = [result.data for result in results]
    resolved = sum(1 for o in outcomes if o['name'])
    failed = sum(1 for o in outcomes if o['error'])
    elapsed = time.time() - script_start_time
    logger.info("=" * 70)
    logger.info(f"Done in {elapsed:.2f}s: {len(outcomes)} barcodes, {resolved} resolved, "
                f"{len(outcomes) - resolved - failed} unknown, {failed} failed")
    return 1 if failed else 0


if __name__ == '__main__':
    raise SystemExit(main())
