#!/usr/bin/env python3
"""Post a sample review to a running submit_review function.

Usage:
    # local (from the repo root, which holds main.py): functions-framework --target=submit_review
    python scripts/submit_test_review.py http://localhost:8080
    python scripts/submit_test_review.py https://REGION-PROJECT.cloudfunctions.net/submit_review --rating 2
"""

import argparse
import json
import sys
import uuid

import requests


def main():
    parser = argparse.ArgumentParser(description=__doc__.splitlines()[0])
    parser.add_argument("url", help="Function URL")
    parser.add_argument("--rating", default=5, type=int)
    parser.add_argument("--origin", default="http://localhost")
    parser.add_argument("--preflight", action="store_true", help="Send an OPTIONS request first")
    args = parser.parse_args()

    headers = {"Origin": args.origin}

    if args.preflight:
        resp = requests.options(args.url, headers=headers, timeout=30)
        print(f"OPTIONS → {resp.status_code}")
        for name, value in resp.headers.items():
            if name.lower().startswith("access-control"):
                print(f"  {name}: {value}")

    tag = uuid.uuid4().hex[:8]
    review = {
        "name": f"Widget Test {tag}",
        "email": f"widget-test+{tag}@example.com",
        "rating": args.rating,
        "feedback": "Sent by scripts/submit_test_review.py",
        "location": "Test Location",
    }
    print(f"POST {args.url}\n{json.dumps(review, indent=2)}")

    resp = requests.post(args.url, json=review, headers=headers, timeout=60)
    print(f"→ {resp.status_code}")
    try:
        print(json.dumps(resp.json(), indent=2))
    except ValueError:
        print(resp.text)

    return 0 if resp.ok else 1


if __name__ == "__main__":
    sys.exit(main())
