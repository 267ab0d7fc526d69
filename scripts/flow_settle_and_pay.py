#!/usr/bin/env python3
"""
Invoice settlement and payment flow script.

DO NOT ADD BUSINESS LOGIC HERE.
This script only orchestrates API calls.
All rules live in the backend.

Usage:
    python scripts/flow_settle_and_pay.py --booking-id 42 --internal-key <key>
    python scripts/flow_settle_and_pay.py --booking-id 42 --skip-payment

Flow:
    1. Request the booking's invoice
    2. Request it again (must return the same invoice)
    3. Read the public invoice view
    4. Confirm payment through the internal callback
    5. Read the public invoice view again
"""

import argparse
import json
import sys

import httpx

BASE_URL = "http://localhost:8000"


def api_request(
    method: str,
    endpoint: str,
    data: dict | None = None,
    headers: dict | None = None,
) -> dict:
    """Make an API request."""
    url = f"{BASE_URL}{endpoint}"

    if method == "GET":
        response = httpx.get(url, headers=headers, timeout=10.0)
    elif method == "POST":
        response = httpx.post(url, headers=headers, json=data or {}, timeout=10.0)
    else:
        raise ValueError(f"Unknown method: {method}")

    return {"status": response.status_code, "data": response.json() if response.text else {}}


def print_step(step: int, title: str):
    """Print step header."""
    print(f"\n{'='*60}")
    print(f"STEP {step}: {title}")
    print("="*60)


def print_result(result: dict, fields: list[str] | None = None):
    """Print result, optionally filtering fields."""
    if result["status"] >= 400:
        print(f"ERROR ({result['status']}): {json.dumps(result['data'], indent=2)}")
        return False

    print(f"Status: {result['status']}")
    if fields:
        filtered = {k: result["data"].get(k) for k in fields if k in result["data"]}
        print(json.dumps(filtered, indent=2))
    else:
        print(json.dumps(result["data"], indent=2))
    return True


def main():
    parser = argparse.ArgumentParser(description="Invoice settlement and payment flow")
    parser.add_argument("--booking-id", type=int, required=True, help="Booking id")
    parser.add_argument("--internal-key", help="Internal API key for the payment callback")
    parser.add_argument("--payment-method", default="MOBILE_MONEY", help="Payment method to record")
    parser.add_argument("--skip-payment", action="store_true", help="Stop before confirming payment")
    args = parser.parse_args()

    summary_fields = ["invoiceId", "invoiceNumber", "paymentRef", "status", "totalAmount", "currency", "message"]

    # Step 1: Request invoice
    print_step(1, "Request invoice for booking")
    first = api_request("POST", "/api/v1/public/invoices/from-booking", {"bookingId": args.booking_id})
    if not print_result(first, summary_fields):
        sys.exit(1)
    invoice_id = first["data"]["invoiceId"]

    # Step 2: Request again
    print_step(2, "Request invoice again")
    second = api_request("POST", "/api/v1/public/invoices/from-booking", {"bookingId": args.booking_id})
    if not print_result(second, summary_fields):
        sys.exit(1)
    if second["data"]["invoiceId"] != invoice_id:
        print(f"ERROR: second request returned invoice {second['data']['invoiceId']}, expected {invoice_id}")
        sys.exit(1)

    # Step 3: Public view
    print_step(3, "Read public invoice")
    view = api_request("GET", f"/api/v1/public/invoices/{invoice_id}")
    if not print_result(view, ["invoiceNumber", "status", "totalAmount", "priceBreakdown"]):
        sys.exit(1)

    if args.skip_payment:
        print("\n" + "="*60)
        print("FLOW COMPLETE (skipped payment)")
        print("="*60)
        return

    if not args.internal_key:
        print("ERROR: --internal-key is required to confirm payment")
        sys.exit(1)

    # Step 4: Confirm payment
    print_step(4, "Confirm payment (internal callback)")
    paid = api_request(
        "POST",
        f"/api/v1/internal/invoices/{invoice_id}/mark-paid",
        {"paymentMethod": args.payment_method},
        headers={"X-Internal-Key": args.internal_key},
    )
    if not print_result(paid):
        sys.exit(1)
    print("\nInvoice PAID")

    # Step 5: Public view after payment
    print_step(5, "Read public invoice after payment")
    view = api_request("GET", f"/api/v1/public/invoices/{invoice_id}")
    if not print_result(view, ["invoiceNumber", "status", "priceBreakdown"]):
        sys.exit(1)

    breakdown = view["data"]["priceBreakdown"]
    print("\n" + "="*60)
    print("FULL FLOW COMPLETE")
    print("="*60)
    print(f"Invoice:        {view['data']['invoiceNumber']}")
    print(f"Accommodation:  {breakdown['accommodationSubtotal']:,.2f} {view['data']['currency']}")
    print(f"Transport:      {breakdown['transportFare']:,.2f} {view['data']['currency']}")
    print(f"Total:          {breakdown['total']:,.2f} {view['data']['currency']}")


if __name__ == "__main__":
    main()
