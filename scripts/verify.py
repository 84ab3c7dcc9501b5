"""
Analytics Verification Script

Cross-checks the persisted analytics snapshot against the order log in the
local JSON files, and the orders.xlsx export when one exists.
Run from project root: python scripts/verify.py

Version: 1.0.0
"""

import json
import os
import sys
from datetime import datetime

# Add parent directory to path
sys.path.insert(0, os.path.dirname(os.path.dirname(os.path.abspath(__file__))))

import pandas as pd

from restohub.core.config import get_settings

settings = get_settings()
ORDERS_FILE = os.path.join(settings.data_directory, 'orders.json')
ANALYTICS_FILE = os.path.join(settings.data_directory, 'analytics_data.json')
EXPORT_FILE = os.path.join(settings.export_directory, 'orders.xlsx')


def _load(path: str, key: str):
    with open(path, 'r', encoding='utf-8') as f:
        return json.load(f)[key]


def verify_analytics() -> bool:
    """Compare snapshot totals with totals recomputed from orders.json."""

    print("=" * 60)
    print("🔍 ANALYTICS VERIFICATION REPORT")
    print("=" * 60)
    print(f"⏰ Timestamp: {datetime.now().strftime('%Y-%m-%d %H:%M:%S')}")
    print(f"📄 Orders: {ORDERS_FILE}")
    print(f"📄 Analytics: {ANALYTICS_FILE}")
    print("=" * 60)

    for path in (ORDERS_FILE, ANALYTICS_FILE):
        if not os.path.exists(path):
            print(f"\n❌ {path} not found!")
            print("   Start the API and place some orders first: python scripts/simulate.py")
            return False

    orders = pd.DataFrame(_load(ORDERS_FILE, 'orders'))
    snapshot = _load(ANALYTICS_FILE, 'analytics')
    ok = True

    total_orders = len(orders)
    total_revenue = round(float(orders['total'].sum()), 2) if total_orders else 0

    print(f"\n📊 ORDER LOG:")
    print(f"   Orders: {total_orders}")
    print(f"   Revenue: ₹{total_revenue:.2f}")

    snap_orders = snapshot['fullRecord']['totalOrders']
    snap_revenue = snapshot['revenueAnalytics']['totalRevenue']
    print(f"\n📈 SNAPSHOT:")
    print(f"   Orders: {snap_orders}")
    print(f"   Revenue: ₹{snap_revenue}")
    print(f"   Last order: {snapshot.get('lastUpdated')}")

    if snap_orders != total_orders or abs(snap_revenue - total_revenue) > 0.01:
        print("\n⚠️ Snapshot does not match the order log (recompute pending or failed)")
        ok = False
    else:
        print("\n✅ Snapshot totals match the order log")

    if snapshot['dailyAnalytics']['fullDay']['orders'] != total_orders:
        print("⚠️ fullDay order count differs from the order log")
        ok = False

    if total_orders:
        duplicates = orders['id'].duplicated().sum()
        if duplicates:
            print(f"⚠️ {duplicates} duplicate order IDs found!")
            ok = False
        else:
            print("✅ No duplicate order IDs")

        staff = orders.get('staffMember', pd.Series(index=orders.index, dtype=object))
        by_staff = orders.assign(staff=staff.fillna('Customer Orders')).groupby('staff')['total'].sum()
        print(f"\n💰 REVENUE BY STAFF:")
        for name, revenue in by_staff.items():
            recorded = snapshot['revenueAnalytics']['revenueByStaff'].get(name)
            marker = "✅" if recorded is not None and abs(recorded - revenue) <= 0.01 else "⚠️"
            print(f"   {marker} {name}: ₹{revenue:.2f} (snapshot: {recorded})")

        print(f"\n📋 RECENT ORDERS:")
        print("-" * 60)
        cols = [c for c in ['id', 'customerName', 'total', 'status', 'timestamp'] if c in orders.columns]
        print(orders[cols].tail(5).to_string(index=False))

    if os.path.exists(EXPORT_FILE):
        exported = pd.read_excel(EXPORT_FILE, engine='openpyxl')
        print(f"\n📄 EXPORT: {len(exported)} rows in {EXPORT_FILE}")
        if len(exported) != total_orders:
            print("   ⚠️ Export is out of date (re-run POST /api/export/orders)")

    print("\n" + "=" * 60)
    print("✅ VERIFICATION COMPLETE" if ok else "⚠️ VERIFICATION FOUND ISSUES")
    print("=" * 60)

    return ok


if __name__ == "__main__":
    sys.exit(0 if verify_analytics() else 1)
