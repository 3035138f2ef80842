#!/usr/bin/env python3
"""
Booking lifecycle flow script.

DO NOT ADD BUSINESS LOGIC HERE.
This script only orchestrates API calls.
All rules live in the backend.

Usage:
    python scripts/flow_book_and_confirm.py --rental-id <UUID> --check-in 2026-11-01 --check-out 2026-11-06 \
        --guest-token <JWT> --host-token <JWT>

Tokens come from the identity provider; the backend only verifies them.

Flow:
    1. Calculate booking price (guest)
    2. Create booking (guest)
    3. Retry the same dates, expecting 409
    4. Confirm booking (host), or decline with --decline
    5. Complete booking via the internal endpoint (optional, needs --internal-key)
"""

import argparse
import json
import sys

import httpx

BASE_URL = "http://localhost:8000"


def api_request(
    token: str | None,
    method: str,
    endpoint: str,
    data: dict | None = None,
    headers: dict | None = None,
) -> dict:
    """Make an API request."""
    request_headers = dict(headers or {})
    if token:
        request_headers["Authorization"] = f"Bearer {token}"
    response = httpx.request(
        method,
        f"{BASE_URL}{endpoint}",
        headers=request_headers,
        json=data,
        timeout=10.0,
        follow_redirects=True,
    )
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
    parser = argparse.ArgumentParser(description="Booking lifecycle flow")
    parser.add_argument("--rental-id", required=True, help="Rental UUID")
    parser.add_argument("--check-in", required=True, help="Check-in date (YYYY-MM-DD)")
    parser.add_argument("--check-out", required=True, help="Check-out date (YYYY-MM-DD)")
    parser.add_argument("--guests", type=int, default=2, help="Number of guests")
    parser.add_argument("--guest-token", required=True, help="Guest access token")
    parser.add_argument("--host-token", required=True, help="Host access token")
    parser.add_argument("--decline", action="store_true", help="Decline instead of confirming")
    parser.add_argument("--internal-key", help="Internal API key; completes the booking when set")
    args = parser.parse_args()

    stay = {
        "rental_id": args.rental_id,
        "check_in_date": args.check_in,
        "check_out_date": args.check_out,
        "number_of_guests": args.guests,
    }

    # Step 1: Calculate booking price
    print_step(1, "Calculate booking price")
    calc_result = api_request(args.guest_token, "POST", "/api/v1/bookings/calculate", stay)
    if not print_result(calc_result):
        sys.exit(1)

    if not calc_result["data"].get("available"):
        print(f"ERROR: Rental not available - {calc_result['data'].get('unavailable_reason')}")
        sys.exit(1)

    breakdown = calc_result["data"]["price_breakdown"]
    print(f"\nPricing Summary:")
    print(f"  Nights:       {breakdown['number_of_nights']}")
    print(f"  Subtotal:     {breakdown['subtotal']}")
    print(f"  Cleaning fee: {breakdown['cleaning_fee']}")
    print(f"  Service fee:  {breakdown['service_fee']}")
    print(f"  Total Price:  {breakdown['total_price']}")

    # Step 2: Create booking
    print_step(2, "Create booking")
    booking_result = api_request(
        args.guest_token, "POST", "/api/v1/bookings", {**stay, "guest_message": "Flow script"}
    )
    if not print_result(booking_result, ["id", "status", "total_price", "created_at"]):
        sys.exit(1)
    booking_id = booking_result["data"]["id"]

    # Step 3: Same dates again must conflict
    print_step(3, "Re-book the same dates (expect 409)")
    retry_result = api_request(args.guest_token, "POST", "/api/v1/bookings", stay)
    print(f"Status: {retry_result['status']} {json.dumps(retry_result['data'])}")
    if retry_result["status"] != 409:
        print("ERROR: overlapping booking was not rejected")
        sys.exit(1)

    # Step 4: Host decision
    target = "DECLINED" if args.decline else "CONFIRMED"
    print_step(4, f"Set booking to {target} (as host)")
    status_result = api_request(
        args.host_token, "PATCH", f"/api/v1/bookings/{booking_id}/status", {"status": target}
    )
    if not print_result(status_result, ["id", "status"]):
        sys.exit(1)

    if args.decline or not args.internal_key:
        print("\n" + "="*60)
        print("FLOW COMPLETE")
        print("="*60)
        return

    # Step 5: Complete booking
    print_step(5, "Complete booking (internal)")
    complete_result = api_request(
        None,
        "POST",
        f"/api/v1/internal/bookings/{booking_id}/complete",
        headers={"X-Internal-Key": args.internal_key},
    )
    if not print_result(complete_result, ["id", "status"]):
        sys.exit(1)

    print("\n" + "="*60)
    print("FULL FLOW COMPLETE")
    print("="*60)


if __name__ == "__main__":
    main()
