"""
Ledger Verification Script

Verifies data integrity of the Excel order ledger.
Run from project root: python scripts/verify.py
Start over with an empty ledger: python scripts/verify.py --reset
"""

import os
import sys
from datetime import datetime

# Add parent directory to path
sys.path.insert(0, os.path.dirname(os.path.dirname(os.path.abspath(__file__))))

import pandas as pd

from orderdesk.services.excel_manager import ExcelManager

LEDGER_FILE = ExcelManager.ledger_file()


def verify_ledger() -> bool:
    """Verify ledger file integrity after a simulation."""

    print("=" * 60)
    print("🔍 LEDGER VERIFICATION REPORT")
    print("=" * 60)
    print(f"⏰ Timestamp: {datetime.now().strftime('%Y-%m-%d %H:%M:%S')}")
    print(f"📄 File: {LEDGER_FILE}")
    print("=" * 60)

    if not LEDGER_FILE.exists():
        print("\n❌ Ledger file not found!")
        print("   Run the simulation first: python scripts/simulate.py")
        return False

    try:
        df = pd.read_excel(LEDGER_FILE, engine='openpyxl', dtype={"tracking_id": str})
        print("\n✅ File loaded successfully!")
    except Exception as e:
        print(f"\n❌ Could not read ledger: {e}")
        return False

    print("\n📊 STATISTICS:")
    print(f"   Total Orders: {len(df)}")
    print(f"   Columns: {len(df.columns)}")

    required = ['tracking_id', 'order_type', 'total', 'order_status', 'paid']
    missing = [col for col in required if col not in df.columns]
    ok = not missing

    if missing:
        print(f"\n⚠️ Missing Columns: {missing}")
    else:
        print("\n✅ All required columns present")

    if 'tracking_id' in df.columns:
        duplicates = df['tracking_id'].duplicated().sum()
        malformed = (~df['tracking_id'].astype(str).str.fullmatch(r"\d{4}")).sum()
        if duplicates > 0:
            ok = False
            print(f"\n⚠️ {duplicates} duplicate tracking IDs found!")
        else:
            print("✅ No duplicate tracking IDs")
        if malformed > 0:
            ok = False
            print(f"⚠️ {malformed} malformed tracking IDs")

    if 'total_mismatch' in df.columns:
        flagged = df['total_mismatch'].fillna(False).astype(bool).sum()
        print(f"🚩 Orders with total mismatch: {flagged}")

    if 'total' in df.columns:
        print("\n💰 REVENUE:")
        print(f"   Total: ₹{df['total'].sum():.2f}")
        print(f"   Average: ₹{df['total'].mean():.2f}")
        if 'paid' in df.columns:
            paid = df.loc[df['paid'].fillna(False).astype(bool), 'total'].sum()
            print(f"   Collected: ₹{paid:.2f}")

    print("\n📋 RECENT ORDERS:")
    print("-" * 60)
    if len(df) > 0:
        cols = [c for c in ['tracking_id', 'order_type', 'total', 'order_status', 'paid'] if c in df.columns]
        print(df[cols].tail(5).to_string(index=False))

    print("\n" + "=" * 60)
    print("✅ VERIFICATION COMPLETE" if ok else "⚠️ VERIFICATION FOUND ISSUES")
    print("=" * 60)

    return ok


if __name__ == "__main__":
    if "--reset" in sys.argv[1:]:
        cleared = ExcelManager.clear_all()
        print("🧹 Ledger cleared" if cleared else "❌ Could not clear ledger")
        sys.exit(0 if cleared else 1)
    sys.exit(0 if verify_ledger() else 1)
