import argparse
import collections
import concurrent.futures
import os

import requests

BASE = os.environ.get("CATALOG_BASE", "http://127.0.0.1:8000/api/v1")


def adjust_task(i, product_id, variant_id, qty):
    url = f"{BASE}/products/{product_id}/variants/{variant_id}/stock"
    try:
        r = requests.patch(url, json={"quantity": qty}, timeout=10)
        return (i, r.status_code, r.text)
    except requests.RequestException as e:
        return (i, "ERR", str(e))


def current_stock(product_id, variant_id):
    r = requests.get(f"{BASE}/products/{product_id}/variants", timeout=10)
    r.raise_for_status()
    for v in r.json()["data"]:
        if v["id"] == variant_id:
            return v["stockQuantity"]
    return None


def run(workers, product_id, variant_id, qty):
    print(f"Running stock test: workers={workers}, variant={variant_id}, quantity={qty}")
    before = current_stock(product_id, variant_id)
    with concurrent.futures.ThreadPoolExecutor(max_workers=workers) as ex:
        futures = [ex.submit(adjust_task, i, product_id, variant_id, qty) for i in range(workers)]
        results = [f.result() for f in futures]
    for r in results:
        print(r[0], r[1], r[2][:200])
    print("Status codes:", dict(collections.Counter(r[1] for r in results)))
    after = current_stock(product_id, variant_id)
    applied = sum(1 for r in results if r[1] == 200)
    print(f"Stock before={before} after={after} applied={applied}")
    if before is not None and after is not None and after != before + applied * qty:
        print("WARNING: final stock does not match the number of accepted adjustments")


if __name__ == "__main__":
    parser = argparse.ArgumentParser(description="Fire concurrent stock adjustments at one variant.")
    parser.add_argument("product_id")
    parser.add_argument("variant_id")
    parser.add_argument("--qty", type=int, default=-1, help="signed quantity per request")
    parser.add_argument("--workers", type=int, default=8)
    args = parser.parse_args()
    run(args.workers, args.product_id, args.variant_id, args.qty)
