import sqlite3
import sys

DB = sys.argv[1] if len(sys.argv) > 1 else "catalog.db"
SKU = sys.argv[2] if len(sys.argv) > 2 else None

conn = sqlite3.connect(DB)
cur = conn.cursor()

print("=== Products ===")
if SKU:
    cur.execute(
        "SELECT id, sku, name, base_price, is_active, version, updated_at FROM products WHERE sku=?",
        (SKU,),
    )
else:
    cur.execute(
        "SELECT id, sku, name, base_price, is_active, version, updated_at FROM products ORDER BY created_at DESC LIMIT 20"
    )
products = cur.fetchall()
for r in products:
    print(
        {
            "id": r[0],
            "sku": r[1],
            "name": r[2],
            "base_price": r[3],
            "is_active": bool(r[4]),
            "version": r[5],
            "updated_at": r[6],
        }
    )

print("\n=== Variants / stock ===")
for p in products:
    cur.execute(
        "SELECT sku, name, price, stock_quantity, version FROM product_variants WHERE product_id=? ORDER BY sku",
        (p[0],),
    )
    for r in cur.fetchall():
        print(p[1], r)

conn.close()
